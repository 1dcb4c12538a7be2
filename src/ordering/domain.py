"""Ordering bounded context: order lifecycle, stock ledger and delivery dispatch.

One domain covers products, orders and riders because a stock debit, an order
transition and a rider earnings credit must commit in the same unit of work.
"""

from protean.domain import Domain

ordering = Domain(name="ordering")
