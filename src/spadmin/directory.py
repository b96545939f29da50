from __future__ import annotations

import logging
from typing import List, Tuple

from .admin.base import AdminApi
from .errors import InvalidDistinguishedNameError

logger = logging.getLogger("spadmin.directory")


def split_dn(dn: str) -> Tuple[List[str], str]:
    """Split ``OU=a,OU=b,DC=corp,DC=local`` into (["a", "b"], "DC=corp,DC=local")."""
    ous: List[str] = []
    domain: List[str] = []
    for part in (p.strip() for p in dn.split(",")):
        if "=" not in part:
            raise InvalidDistinguishedNameError(f"Malformed DN component {part!r} in {dn!r}")
        key, value = part.split("=", 1)
        key = key.strip().upper()
        if key == "OU" and not domain:
            ous.append(value.strip())
        elif key == "DC":
            domain.append(f"DC={value.strip()}")
        else:
            raise InvalidDistinguishedNameError(f"Unexpected {key}= component in {dn!r}")
    if not ous or not domain:
        raise InvalidDistinguishedNameError(f"{dn!r} must contain OU= and DC= components")
    return ous, ",".join(domain)


def ensure_organizational_unit(api: AdminApi, dn: str, protect: bool = True) -> List[str]:
    """Create every missing OU along ``dn``, top-down. Returns the DNs created."""
    ous, parent = split_dn(dn)
    created: List[str] = []
    for name in reversed(ous):
        current = f"OU={name},{parent}"
        if not api.organizational_unit_exists(current):
            api.create_organizational_unit(name, parent, protect=protect)
            logger.info("Created organizational unit %s", current)
            created.append(current)
        parent = current
    return created


def remove_organizational_unit(api: AdminApi, dn: str, recursive: bool = True) -> bool:
    split_dn(dn)
    if not api.organizational_unit_exists(dn):
        logger.warning("Organizational unit %s does not exist", dn)
        return False
    api.set_organizational_unit_protection(dn, False)
    api.remove_organizational_unit(dn, recursive=recursive)
    logger.info("Removed organizational unit %s", dn)
    return True
