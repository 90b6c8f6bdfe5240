"""Product Stock Ledger — the single path through which stock changes.

Checkout and cancellation never read-then-write stock themselves. They ask
the ledger for a conditional decrement ("take N only if N are there") or an
increment. The ledger holds a per-product lock around one DecrementStock or
IncrementStock command, and that command checks and persists the new count
inside a single unit of work. Two concurrent checkouts of the same product
therefore cannot both pass the check and both decrement past zero.

The lock is per process. Deployments running several workers against a
shared database need the provider to apply the conditional update.
"""

import threading
import weakref

import structlog
from protean.utils.globals import current_domain

from storefront.exceptions import InsufficientStockError
from storefront.stock.movements import DecrementStock, IncrementStock
from storefront.stock.product import Product

logger = structlog.get_logger(__name__)


class StockLedger:
    def __init__(self) -> None:
        # Entries vanish once no caller holds the lock
        self._locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()
        self._registry_lock = threading.Lock()

    def _lock_for(self, product_id) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(str(product_id))
            if lock is None:
                lock = threading.Lock()
                self._locks[str(product_id)] = lock
            return lock

    # -------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------
    def find_product(self, product_id) -> Product:
        """Return the product or raise ObjectNotFoundError."""
        return current_domain.repository_for(Product).get(product_id)

    def get_stock(self, product_id) -> int:
        return self.find_product(product_id).stock or 0

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def conditional_decrement(self, product_id, amount: int) -> int:
        """Decrement stock by ``amount`` only if that many units are available.

        Returns the remaining stock. Raises InsufficientStockError, leaving
        stock untouched, when fewer than ``amount`` units are available.
        """
        with self._lock_for(product_id):
            try:
                remaining = current_domain.process(
                    DecrementStock(product_id=str(product_id), quantity=amount),
                    asynchronous=False,
                )
            except InsufficientStockError as exc:
                logger.info(
                    "Stock reservation refused",
                    product_id=str(product_id),
                    requested=exc.requested,
                    available=exc.available,
                )
                raise
        return remaining

    def increment(self, product_id, amount: int) -> int:
        """Return ``amount`` units to stock. Returns the new stock count."""
        with self._lock_for(product_id):
            return current_domain.process(
                IncrementStock(product_id=str(product_id), quantity=amount),
                asynchronous=False,
            )


_current_ledger: StockLedger | None = None


def get_stock_ledger() -> StockLedger:
    """Return the process-wide stock ledger."""
    global _current_ledger
    if _current_ledger is None:
        _current_ledger = StockLedger()
    return _current_ledger


def set_stock_ledger(ledger: StockLedger) -> None:
    """Override the active ledger (useful for tests)."""
    global _current_ledger
    _current_ledger = ledger


def reset_stock_ledger() -> None:
    global _current_ledger
    _current_ledger = None
