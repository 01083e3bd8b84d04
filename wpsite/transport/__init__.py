"""
Transport layer for running external commands.

Every executable wpsite calls (apache2ctl, a2ensite, systemctl, wp) goes
through a Transport as an argument vector. Nothing is run through a shell.
"""

from wpsite.transport.base import Transport, mask_secrets
from wpsite.transport.local import LocalTransport

__all__ = ["Transport", "LocalTransport", "mask_secrets"]
