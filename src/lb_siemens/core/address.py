from typing import Optional

from lb_siemens.models.scl_models import IntAddr


def parse_int_addr(int_addr: Optional[str]) -> Optional[IntAddr]:
    """
    Split a SIPROTEC 5 internal address into its parts.

    Accepted forms:
      - ``<name>;<lnClass>/<doPath>/<daPath>``
      - ``<name>;<doPath>/<daPath>``

    Returns None for anything else, including a missing address.
    """
    if not int_addr:
        return None

    pair = int_addr.split(';')
    if len(pair) != 2:
        return None
    name, remainder = pair

    segments = remainder.split('/')
    if len(segments) == 3:
        ln_class, do_path, da_path = segments
        return IntAddr(name=name, ln_class=ln_class, do_path=do_path, da_path=da_path)
    if len(segments) == 2:
        do_path, da_path = segments
        return IntAddr(name=name, do_path=do_path, da_path=da_path)
    return None


def expected_int_addr(do_name: str, ln_class: str, da_name: str) -> str:
    """Internal address SIPROTEC 5 uses for a sampled value input bound to an FCDA."""
    return f"{do_name};{ln_class}/{do_name}/{da_name}"
