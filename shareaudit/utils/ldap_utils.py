#!/usr/bin/env python3
from typing import List, Optional

from impacket.ldap import ldapasn1


def is_entry(item) -> bool:
    return isinstance(item, ldapasn1.SearchResultEntry)


def entry_dn(item) -> str:
    return str(item["objectName"])


def attribute_values(item, name: str) -> List[str]:
    values = []
    for attribute in item["attributes"]:
        if str(attribute["type"]).lower() != name.lower():
            continue
        for val in attribute["vals"]:
            raw = val.asOctets() if hasattr(val, "asOctets") else val
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8", errors="replace")
            values.append(str(raw))
    return values


def attribute_value(item, name: str) -> Optional[str]:
    values = attribute_values(item, name)
    return values[0] if values else None
