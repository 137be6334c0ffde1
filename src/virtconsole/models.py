#!/usr/bin/env python3
"""
Pydantic models for the forms collected by the console's sub-dialogs.
"""

import ipaddress
import re
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


def _validate_vm_name(v: str) -> str:
    v = v.strip() if v else v
    if not v:
        raise ValueError("VM name cannot be empty")
    if len(v) > 64:
        raise ValueError("VM name must be <= 64 characters")
    if not _NAME_RE.match(v):
        raise ValueError("VM name may only contain letters, digits, '.', '_' and '-'")
    return v


class NewVMSettings(BaseModel):
    """Settings for a VM defined from scratch."""

    name: str = Field(description="VM name")
    memory_mb: int = Field(default=2048, ge=256, le=1048576, description="RAM in MiB")
    vcpus: int = Field(default=2, ge=1, le=256, description="Number of vCPUs")
    disk_size_gb: int = Field(default=20, ge=1, le=16384, description="Disk size in GiB")
    network: str = Field(default="default", description="libvirt network to attach")

    @field_validator("name")
    @classmethod
    def name_must_be_valid(cls, v: str) -> str:
        return _validate_vm_name(v)

    @field_validator("network")
    @classmethod
    def network_must_be_set(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("network cannot be empty")
        return v.strip()


class CloneSettings(BaseModel):
    """Settings for a VM cloned from a template."""

    template: str
    name: str

    @field_validator("name")
    @classmethod
    def name_must_be_valid(cls, v: str) -> str:
        return _validate_vm_name(v)


class Deployment(BaseModel):
    """A network-boot deployment bound to one NIC address."""

    mac: str
    hostname: str
    image: str
    address: Optional[str] = None
    gateway: Optional[str] = None
    nameservers: List[str] = Field(default_factory=list)

    @field_validator("mac")
    @classmethod
    def mac_must_be_valid(cls, v: str) -> str:
        v = v.strip().lower()
        if not re.fullmatch(r"([0-9a-f]{2}[:-]){5}[0-9a-f]{2}", v):
            raise ValueError(f"Invalid MAC address: {v}")
        return v.replace("-", ":")

    @field_validator("image")
    @classmethod
    def image_must_be_set(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("image cannot be empty")
        return v.strip()

    @field_validator("address")
    @classmethod
    def address_must_be_interface(cls, v: Optional[str]) -> Optional[str]:
        if v:
            ipaddress.ip_interface(v)
        return v or None

    @field_validator("gateway")
    @classmethod
    def gateway_must_be_ip(cls, v: Optional[str]) -> Optional[str]:
        if v:
            ipaddress.ip_address(v)
        return v or None

    @field_validator("nameservers")
    @classmethod
    def nameservers_must_be_ips(cls, v: List[str]) -> List[str]:
        for server in v:
            ipaddress.ip_address(server)
        return v

    @property
    def manifest_name(self) -> str:
        return self.mac.replace(":", "-") + ".yaml"
