"""Moving reagents between mixtures.

Each attempt runs in its own transaction: reagents are removed from the
source and offered to the target, and when the target takes less than
offered the attempt is aborted and retried with the accepted amount. The
amount strictly decreases between attempts, so the loops always end, and
either a whole attempt is visible on both sides or nothing is.
"""

from __future__ import annotations

import logging
from typing import Collection

from chemvat.mixture import ReagentMixture
from chemvat.models import Reagent, ReagentState
from chemvat.transaction import Transaction
from chemvat.volume import VolumeMixture

logger = logging.getLogger(__name__)


def _open(parent: Transaction | None) -> Transaction:
    return Transaction.open_outer() if parent is None else parent.open_nested()


def move_reagents(
    source: ReagentMixture,
    reagents: Collection[Reagent],
    target: ReagentMixture,
    amount: int,
    parent: Transaction | None = None,
) -> int:
    """Move up to ``amount`` of ``reagents`` from ``source`` into ``target``.

    Returns the amount actually moved.
    """
    if not reagents:
        return 0
    while amount > 0:
        with _open(parent) as transaction:
            extracted = source.remove_from(amount, reagents, transaction)
            amount = extracted.total_amount
            added = target.add_mixture(extracted, transaction)
            if added == amount:
                transaction.commit()
                return amount
            logger.debug("Target accepted %d of %d, retrying", added, amount)
            transaction.abort()
            amount = added
    return 0


def force_move_reagents(
    source: ReagentMixture,
    reagents: Collection[Reagent],
    target: VolumeMixture,
    amount: int,
    parent: Transaction | None = None,
) -> int:
    """Move reagents into ``target`` ignoring its free volume."""
    if not reagents or amount <= 0:
        return 0
    with _open(parent) as transaction:
        extracted = source.remove_from(amount, reagents, transaction)
        moved = target.force_add_mixture(extracted, transaction)
        transaction.commit()
    return moved


def diffuse(
    mixture_a: ReagentMixture,
    mixture_b: ReagentMixture,
    reagents_a: Collection[Reagent],
    state: ReagentState,
    amount: int,
    parent: Transaction | None = None,
) -> int:
    """Swap up to ``amount`` of reagents in ``state`` between two mixtures.

    ``reagents_a`` are taken from ``mixture_a``; the same amount of
    ``mixture_b``'s own reagents in ``state`` goes the other way. Returns
    the amount exchanged in each direction.
    """
    if not reagents_a:
        return 0
    reagents_b = {r for r in mixture_b.reagents if mixture_b.state(r) == state}
    while amount > 0:
        with _open(parent) as transaction:
            extracted_a = mixture_a.remove_from(amount, reagents_a, transaction)
            extracted_b = mixture_b.remove_from(extracted_a.total_amount, reagents_b, transaction)

            added = mixture_a.add_mixture(extracted_b, transaction)
            if added != extracted_b.total_amount:
                logger.debug("Diffusion into %r accepted %d of %d", mixture_a, added, amount)
                transaction.abort()
                amount = added
                continue
            added = mixture_b.add_mixture(extracted_a, transaction)
            if added != extracted_a.total_amount:
                logger.debug("Diffusion into %r accepted %d of %d", mixture_b, added, amount)
                transaction.abort()
                amount = added
                continue
            transaction.commit()
            return extracted_a.total_amount
    return 0
