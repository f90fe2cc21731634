# SPDX-License-Identifier: LGPL-3.0-or-later
# vmdesk/cli/__init__.py
