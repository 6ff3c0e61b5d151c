"""
Heron CLI.

Usage:
    heron routes <module:attr>
    heron openapi <module:attr> [--title] [--format json|yaml] [--output FILE]
    heron serve <module:attr> [--host] [--port] [--config FILE] [--env-file FILE]

``module:attr`` names a ``Registry`` or a ``HeronServer`` (or a zero-argument
callable returning one).
"""

__cli_name__ = "heron"
