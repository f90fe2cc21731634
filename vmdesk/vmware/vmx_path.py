# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vmdesk/vmware/vmx_path.py
"""
Deduce where a domain's .vmx file lives.

The .vmx path is built from the source of the first file-based hard disk.
The first disk is not used directly because it may be a CD-ROM, and ISO
images are normally not stored in the VM's directory. The result is
``<dir of that disk>/<domain name>.vmx``. This works for most VMs but is
not guaranteed: nothing forces the vmx to sit next to its first disk or
to carry the domain's name.
"""
from __future__ import annotations

from typing import Optional, Tuple

from ..core.exceptions import MissingDisk, MissingSource, UnexpectedFormat
from ..libvirt.domain import DomainDef

VMDK_SUFFIX = ".vmdk"
VMX_SUFFIX = "vmx"


def split_path(path: str) -> Tuple[Optional[str], str]:
    """
    Split ``path`` at its last '/' into (directory, filename).

    The directory is None when there is no separator. A path that ends in
    a separator does not name a file and raises UnexpectedFormat.
    """
    directory, sep, filename = path.rpartition("/")
    if not sep:
        return None, path
    if not filename:
        raise UnexpectedFormat(msg=f"path '{path}' doesn't reference a file")
    return directory, filename


def construct_vmx_path(directory: Optional[str], name: str) -> str:
    if directory is not None:
        return f"{directory}/{name}.{VMX_SUFFIX}"
    return f"{name}.{VMX_SUFFIX}"


def vmx_path_for(definition: DomainDef) -> str:
    """
    Return the deduced .vmx path for ``definition``.

    Raises:
        MissingDisk: no disks, or no file-based hard disk
        MissingSource: the first file-based hard disk has no source
        UnexpectedFormat: that source is not a .vmdk image
    """
    if not definition.disks:
        raise MissingDisk(
            msg="Domain XML doesn't contain any disks, cannot deduce datastore and path for VMX file"
        )

    disk = definition.first_file_disk()
    if disk is None:
        raise MissingDisk(
            msg="Domain XML doesn't contain any file-based harddisks, cannot deduce datastore and path for VMX file"
        )

    src = disk.src
    if not src:
        raise MissingSource(
            msg="First file-based harddisk has no source, cannot deduce datastore and path for VMX file"
        )

    directory, filename = split_path(src)

    if not filename.lower().endswith(VMDK_SUFFIX):
        raise UnexpectedFormat(
            msg=f"Expecting source '{src}' of first file-based harddisk to be a VMDK image"
        )

    return construct_vmx_path(directory, definition.name)


def parse_vmx_file_name(datastore_path: str) -> str:
    """File names in a desktop product's vmx are plain local paths; nothing to translate."""
    return datastore_path


def format_vmx_file_name(path: str) -> str:
    return path
