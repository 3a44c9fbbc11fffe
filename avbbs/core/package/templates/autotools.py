"""
Autotools template — autoreconf, configure, make, make install.

Extra configure flags come from the descriptor's ``autoconf.flags``
list and are appended after the standard FHS layout flags.
"""

from __future__ import annotations

from avbbs.core.models.package import PackageDescriptor

from .base import apply_template_defaults

CONFIGURE_FLAGS = (
    "--prefix=/usr",
    "--sysconfdir=/etc",
    "--libdir=/usr/lib",
    "--libexecdir=/usr/lib",
    "--localstatedir=/var",
)


def configure_flags(descriptor: PackageDescriptor) -> list[str]:
    """Standard flags followed by the package's own ``autoconf.flags``."""
    autoconf = descriptor.options.get("autoconf") or {}
    extra = autoconf.get("flags", []) if isinstance(autoconf, dict) else []
    return [*CONFIGURE_FLAGS, *(str(flag) for flag in extra)]


def autotools(descriptor: PackageDescriptor) -> PackageDescriptor:
    flags = " ".join(configure_flags(descriptor))
    return apply_template_defaults(descriptor, {
        "configure": [
            "autoconf -f -i -v",
            f"$AVBBS_BUILD_DIR/configure {flags}",
        ],
        "build": ["make"],
        "install": ["make install DESTDIR=$AVBBS_INSTALL_DIR"],
        "clean": ["make distclean"],
    })
