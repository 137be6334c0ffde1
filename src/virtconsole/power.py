#!/usr/bin/env python3
"""
Power actions and the one-shot boot order overrides.
"""

import threading
from enum import Enum
from typing import Callable, Optional

from virtconsole.errors import ConsoleError
from virtconsole.interfaces.hypervisor import DISK, ETHERNET, DeviceList, VirtualMachine
from virtconsole.logging import get_logger

log = get_logger(__name__)

NETWORK_FIRST = (ETHERNET, DISK)
DISK_FIRST = (DISK, ETHERNET)

DEFAULT_REVERT_DELAY = 3.0


class PowerAction(Enum):
    """Choices offered by the power dialog."""

    POWER_ON = "Power on"
    POWER_OFF = "Power off"
    GUEST_SHUTDOWN = "Shutdown guest"
    GUEST_REBOOT = "Reboot guest"
    SUSPEND = "Suspend"
    RESET = "Reset"
    NETWORK_BOOT_ONCE = "Power on, boot from network once"
    DISK_BOOT_ONCE = "Power on, boot from disk"
    NONE = "Cancel"

    @property
    def label(self) -> str:
        return self.value


class DeferredBootRevert:
    """Restores a disk-first boot order some time after a network boot.

    The reversal is fire-and-forget: once scheduled it always runs, whatever
    happened to the VM in between, and it is never retried. It touches only
    the VM handle and the device list captured when it was scheduled.
    """

    def __init__(
        self,
        on_error: Callable[[BaseException], None],
        delay: float = DEFAULT_REVERT_DELAY,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ):
        self.on_error = on_error
        self.delay = delay
        self._timer_factory = timer_factory

    def schedule(self, vm: VirtualMachine, devices: DeviceList) -> threading.Timer:
        timer = self._timer_factory(self.delay, self.revert, args=(vm, devices))
        timer.daemon = True
        timer.start()
        log.info("boot_revert.scheduled", vm=vm.name(), delay=self.delay)
        return timer

    def revert(self, vm: VirtualMachine, devices: DeviceList) -> None:
        try:
            vm.set_boot_options(devices.boot_order(DISK_FIRST))
        except Exception as e:
            log.exception("boot_revert.failed", vm=vm.name(), error=str(e))
            self.on_error(e)
            return
        log.info("boot_revert.applied", vm=vm.name())


class PowerController:
    """Maps a PowerAction onto calls against a VM handle.

    Each remote call that fails is handed to ``on_error`` on its own; later
    steps of the same action still run.
    """

    def __init__(
        self,
        on_error: Callable[[ConsoleError], None],
        reverter: Optional[DeferredBootRevert] = None,
    ):
        self.on_error = on_error
        self.reverter = reverter or DeferredBootRevert(on_error)

    def apply(self, vm: VirtualMachine, action: PowerAction) -> None:
        if action is PowerAction.NONE:
            return

        log.info("power.action", vm=vm.name(), action=action.name)
        if action is PowerAction.POWER_ON:
            self._call(vm.power_on)
        elif action is PowerAction.POWER_OFF:
            self._call(vm.power_off)
        elif action is PowerAction.GUEST_SHUTDOWN:
            self._call(vm.shutdown_guest)
        elif action is PowerAction.GUEST_REBOOT:
            self._call(vm.reboot_guest)
        elif action is PowerAction.SUSPEND:
            self._call(vm.suspend)
        elif action is PowerAction.RESET:
            self._call(vm.reset)
        elif action is PowerAction.NETWORK_BOOT_ONCE:
            self._boot_once(vm, NETWORK_FIRST, revert=True)
        elif action is PowerAction.DISK_BOOT_ONCE:
            self._boot_once(vm, DISK_FIRST, revert=False)
        else:
            raise ValueError(f"Unhandled power action: {action}")

    def _call(self, func: Callable, *args) -> bool:
        try:
            func(*args)
        except ConsoleError as e:
            self.on_error(e)
            return False
        return True

    def _boot_once(self, vm: VirtualMachine, kinds, revert: bool) -> None:
        try:
            devices = vm.devices()
        except ConsoleError as e:
            # Without a device list there is no boot order to set or restore.
            self.on_error(e)
            devices = None

        if devices is not None:
            self._call(vm.set_boot_options, devices.boot_order(kinds))

        self._call(vm.power_on)

        if revert and devices is not None:
            self.reverter.schedule(vm, devices)
