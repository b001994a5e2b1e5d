"""
Mock objects for devsetup testing.
"""

from .host import PINNED_CHANNEL, FakeHost, strip_sudo
from .archives import make_viper_tools_zip
from .filesystem import snapshot_tree

__all__ = [
    "PINNED_CHANNEL",
    "FakeHost",
    "strip_sudo",
    "make_viper_tools_zip",
    "snapshot_tree",
]
