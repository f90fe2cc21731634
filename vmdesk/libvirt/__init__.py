# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vmdesk/libvirt/__init__.py
"""libvirt-style domain model, registry and XML rendering."""

from .capabilities import Capabilities
from .domain import DomainDef, DomainObj, VMwareDomainPrivate
from .domain_list import DomainObjList

__all__ = ["Capabilities", "DomainDef", "DomainObj", "VMwareDomainPrivate", "DomainObjList"]
