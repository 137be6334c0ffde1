#!/usr/bin/env python3
"""
Filter the VM inventory by a search string.

Matching rules:
    ""               every VM, unchanged
    "text"           case-insensitive substring of the VM name
    "mac:text"       case-insensitive substring of any NIC address
    "host:text"      case-insensitive substring of the host name
    "re:pattern"     regular expression searched in the VM name, ignoring case

Matches keep the order of the input list.
"""

import re
from typing import Callable, List, Sequence

from virtconsole.errors import FilterError
from virtconsole.interfaces.hypervisor import VirtualMachine

MAC_PREFIX = "mac:"
HOST_PREFIX = "host:"
REGEX_PREFIX = "re:"


def compile_filter(filter_string: str) -> Callable[[VirtualMachine], bool]:
    """Turn a filter string into a predicate over VM handles.

    Raises:
        FilterError: the filter uses ``re:`` with an invalid pattern, or a
            field prefix with nothing to match.
    """
    text = (filter_string or "").strip()
    if not text:
        return lambda vm: True

    lowered = text.lower()
    if lowered.startswith(REGEX_PREFIX):
        pattern = text[len(REGEX_PREFIX):]
        try:
            regex = re.compile(pattern, re.IGNORECASE)
        except re.error as e:
            raise FilterError(f"Invalid pattern '{pattern}': {e}") from e
        return lambda vm: regex.search(vm.name()) is not None

    if lowered.startswith(MAC_PREFIX):
        needle = _field_value(lowered, MAC_PREFIX)
        return lambda vm: any(needle in nic.address.lower() for nic in vm.network_interfaces())

    if lowered.startswith(HOST_PREFIX):
        needle = _field_value(lowered, HOST_PREFIX)
        return lambda vm: needle in (vm.host or "").lower()

    return lambda vm: lowered in vm.name().lower()


def _field_value(lowered: str, prefix: str) -> str:
    needle = lowered[len(prefix):].strip()
    if not needle:
        raise FilterError(f"Filter '{prefix}' needs a value")
    return needle


def apply_filter(filter_string: str, vms: Sequence[VirtualMachine]) -> List[VirtualMachine]:
    """Return the VMs matching ``filter_string``, in their original order."""
    predicate = compile_filter(filter_string)
    return [vm for vm in vms or [] if predicate(vm)]
