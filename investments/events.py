"""Change events for the realtime layer.

Every committed mutation of a profile or a ledger transaction sends exactly
one signal. Sending is deferred to ``transaction.on_commit`` so rolled-back
work never produces an event. Receivers decide how the change reaches
clients; see ``investments.signals``.
"""
from django.db import transaction
from django.dispatch import Signal

# kwargs: user_id, fields
profile_changed = Signal()

# kwargs: transaction, created
transaction_changed = Signal()


def emit_profile_changed(user_id, fields):
    fields = sorted(set(fields))
    transaction.on_commit(
        lambda: profile_changed.send(sender='profiles', user_id=user_id, fields=fields)
    )


def emit_transaction_changed(ledger_entry, created):
    transaction.on_commit(
        lambda: transaction_changed.send(
            sender=type(ledger_entry), transaction=ledger_entry, created=created
        )
    )
