# SPDX-License-Identifier: LGPL-3.0-or-later
# vmdesk/core/__init__.py
