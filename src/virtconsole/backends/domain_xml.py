#!/usr/bin/env python3
"""
Domain XML generation for VMs defined from the console.
"""

import xml.etree.ElementTree as ET


def generate_domain_xml(settings, vm_uuid: str, disk_path: str) -> str:
    """Generate libvirt XML for a ``NewVMSettings`` form.

    The disk is ranked first in the boot order and the NIC second, so a
    fresh VM can still fall through to network boot.
    """
    domain = ET.Element("domain", type="kvm")

    ET.SubElement(domain, "name").text = settings.name
    ET.SubElement(domain, "uuid").text = vm_uuid

    ET.SubElement(domain, "memory", unit="MiB").text = str(settings.memory_mb)
    ET.SubElement(domain, "currentMemory", unit="MiB").text = str(settings.memory_mb)
    ET.SubElement(domain, "vcpu", placement="static").text = str(settings.vcpus)

    os_elem = ET.SubElement(domain, "os")
    ET.SubElement(os_elem, "type", arch="x86_64", machine="q35").text = "hvm"

    features = ET.SubElement(domain, "features")
    ET.SubElement(features, "acpi")
    ET.SubElement(features, "apic")

    ET.SubElement(domain, "cpu", mode="host-model", check="partial")

    clock = ET.SubElement(domain, "clock", offset="utc")
    ET.SubElement(clock, "timer", name="rtc", tickpolicy="catchup")
    ET.SubElement(clock, "timer", name="pit", tickpolicy="delay")
    ET.SubElement(clock, "timer", name="hpet", present="no")

    ET.SubElement(domain, "on_poweroff").text = "destroy"
    ET.SubElement(domain, "on_reboot").text = "restart"
    ET.SubElement(domain, "on_crash").text = "destroy"

    devices = ET.SubElement(domain, "devices")

    disk = ET.SubElement(devices, "disk", type="file", device="disk")
    ET.SubElement(disk, "driver", name="qemu", type="qcow2")
    ET.SubElement(disk, "source", file=disk_path)
    ET.SubElement(disk, "target", dev="vda", bus="virtio")
    ET.SubElement(disk, "boot", order="1")

    interface = ET.SubElement(devices, "interface", type="network")
    ET.SubElement(interface, "source", network=settings.network)
    ET.SubElement(interface, "model", type="virtio")
    ET.SubElement(interface, "boot", order="2")

    serial = ET.SubElement(devices, "serial", type="pty")
    ET.SubElement(serial, "target", port="0")
    console = ET.SubElement(devices, "console", type="pty")
    ET.SubElement(console, "target", type="serial", port="0")

    ET.SubElement(devices, "graphics", type="vnc", port="-1", autoport="yes")
    video = ET.SubElement(devices, "video")
    ET.SubElement(video, "model", type="virtio", heads="1", primary="yes")

    return ET.tostring(domain, encoding="unicode")
