"""Per-customer cart locks.

Checkout reads the cart, reserves stock, writes the order and only then
empties the cart. Holding the customer's lock across those steps makes a
second checkout of the same cart wait and then find it empty, and keeps
cart edits made through ``process_cart_command`` from landing in between.

Locks are per process and are dropped once nobody holds them.
"""

import threading
import weakref

from protean.utils.globals import current_domain

_locks: "weakref.WeakValueDictionary[str, threading.RLock]" = weakref.WeakValueDictionary()
_registry_lock = threading.Lock()


def cart_lock(customer_id):
    """Return the lock guarding ``customer_id``'s cart."""
    with _registry_lock:
        lock = _locks.get(str(customer_id))
        if lock is None:
            lock = threading.RLock()
            _locks[str(customer_id)] = lock
        return lock


def process_cart_command(command):
    """Process a cart command while holding its customer's cart lock."""
    with cart_lock(command.customer_id):
        return current_domain.process(command, asynchronous=False)
