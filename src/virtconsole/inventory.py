"""
Inventory retrieval with a per-datacenter cache.
"""

import threading
from typing import Dict, List, Tuple

from virtconsole.errors import ConsoleError, InventoryError
from virtconsole.interfaces.hypervisor import InventoryClient, VirtualMachine
from virtconsole.logging import get_logger

log = get_logger(__name__)

_cache: Dict[Tuple[int, str], List[VirtualMachine]] = {}
_cache_lock = threading.Lock()


def vm_inventory(
    client: InventoryClient,
    datacenter: str,
    force_refresh: bool = False,
) -> List[VirtualMachine]:
    """Return the VMs and templates of ``datacenter``.

    The last listing per client and datacenter is cached; ``force_refresh``
    always asks the control plane and replaces the cached entry.

    Raises:
        InventoryError: the control plane could not be queried.
    """
    key = (id(client), datacenter)
    if not force_refresh:
        with _cache_lock:
            cached = _cache.get(key)
        if cached is not None:
            log.debug("inventory.cache_hit", datacenter=datacenter, count=len(cached))
            return list(cached)

    try:
        vms = list(client.list_vms(datacenter))
    except (ConsoleError, ConnectionError) as e:
        raise InventoryError(f"Failed to list VMs in '{datacenter}': {e}") from e

    with _cache_lock:
        _cache[key] = vms
    log.info("inventory.fetched", datacenter=datacenter, count=len(vms), forced=force_refresh)
    return list(vms)


def clear_cache() -> None:
    with _cache_lock:
        _cache.clear()
