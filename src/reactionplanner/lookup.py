"""Compound lookup against PubChem.

The lookup service is an external collaborator: it may be slow, and it may
not know the identifier. ``PubChemLookup.lookup`` blocks, so interactive
callers go through ``lookup_async`` and hand the result to
``ReactionPlanStore.apply_lookup`` once it arrives.
"""

from __future__ import annotations

import functools
import logging
import re
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Protocol
from urllib.parse import quote

import requests

from reactionplanner.config import PUBCHEM_URL
from reactionplanner.constants import AMBIENT_TEMPERATURE_C
from reactionplanner.errors import CompoundNotFoundError, InvalidIdentifierError

logger = logging.getLogger(__name__)

CAS_PATTERN = re.compile(r"^(\d{2,7})-(\d{2})-(\d)$")

_NUMBER = r"[-+]?\d+(?:\.\d+)?"
_TEMPERATURE = re.compile(
    rf"(?P<value>{_NUMBER})(?:\s*(?:to|-|–)\s*{_NUMBER})?(?:\s*°?\s*(?P<unit>[CFK])\b)?"
)
_DENSITY = re.compile(
    rf"(?P<value>{_NUMBER})\s*(?P<unit>g/mL|g/ml|g/cm3|g/cm³|g/cu cm|g/cc|kg/m3|kg/m³)?"
)

PROPERTY_FIELDS = "MolecularWeight,CanonicalSMILES,IsomericSMILES,IUPACName"


@dataclass(frozen=True)
class CompoundInfo:
    mw: float
    smiles: str
    name: str
    cas: str = ""
    melting_point: Optional[float] = None  # °C
    boiling_point: Optional[float] = None  # °C
    density: Optional[float] = None  # g/mL

    @property
    def has_physical_state(self) -> bool:
        return self.melting_point is not None or self.density is not None

    def is_liquid(self, ambient: float = AMBIENT_TEMPERATURE_C) -> bool:
        """Liquid at ``ambient`` °C, as far as the record tells.

        A melting point decides on its own. Without one, a reported density
        is taken as the record of a liquid.
        """
        if self.melting_point is not None:
            return self.melting_point < ambient
        return self.density is not None


class CompoundLookup(Protocol):
    def lookup(self, identifier: str) -> CompoundInfo:
        """Resolve a CAS number or name; raise ``CompoundNotFoundError`` if unknown."""
        ...


def is_cas_number(identifier: str) -> bool:
    return CAS_PATTERN.match(identifier.strip()) is not None


def validate_cas(identifier: str) -> str:
    """Check the CAS check digit; returns the stripped identifier."""
    identifier = identifier.strip()
    match = CAS_PATTERN.match(identifier)
    if match is None:
        raise InvalidIdentifierError(f"{identifier!r} is not a CAS number")
    digits = (match.group(1) + match.group(2))[::-1]
    checksum = sum(index * int(digit) for index, digit in enumerate(digits, start=1)) % 10
    if checksum != int(match.group(3)):
        raise InvalidIdentifierError(f"{identifier!r} has an invalid CAS check digit")
    return identifier


def parse_temperature(text: str) -> Optional[float]:
    """First temperature in ``text``, converted to °C (unitless values are °C)."""
    text = text.replace("−", "-")
    match = _TEMPERATURE.search(text)
    if match is None:
        return None
    value = float(match.group("value"))
    unit = match.group("unit")
    if unit == "F":
        return (value - 32.0) * 5.0 / 9.0
    if unit == "K":
        return value - 273.15
    return value


def parse_density(text: str) -> Optional[float]:
    """First density in ``text``, in g/mL; non-positive values are ignored."""
    text = re.sub(r"\([^)]*\)", "", text.replace("−", "-"))
    match = _DENSITY.search(text)
    if match is None:
        return None
    value = float(match.group("value"))
    if match.group("unit") in ("kg/m3", "kg/m³"):
        value /= 1000.0
    return value if value > 0 else None


def _strings(node: Any) -> Iterator[str]:
    """Every ``StringWithMarkup`` text or numeric value in a PUG-View record."""
    if isinstance(node, dict):
        value = node.get("Value")
        if isinstance(value, dict):
            for item in value.get("StringWithMarkup", []):
                if isinstance(item, dict) and isinstance(item.get("String"), str):
                    yield item["String"]
            numbers = value.get("Number")
            if isinstance(numbers, list) and numbers:
                unit = value.get("Unit", "")
                yield f"{numbers[0]} {unit}".strip()
        for child in node.values():
            if isinstance(child, (dict, list)):
                yield from _strings(child)
    elif isinstance(node, list):
        for child in node:
            yield from _strings(child)


class PubChemLookup:
    """Blocking PubChem PUG REST client."""

    def __init__(
        self,
        base_url: str = PUBCHEM_URL,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get(self, url: str, params: dict | None = None) -> Optional[dict]:
        response = self.session.get(url, params=params, timeout=self.timeout)
        if response.status_code in (400, 404):
            return None
        response.raise_for_status()
        return response.json()

    def _cid(self, identifier: str) -> int:
        data = self._get(f"{self.base_url}/pug/compound/name/{quote(identifier, safe='')}/cids/JSON")
        cids = (data or {}).get("IdentifierList", {}).get("CID") or []
        if not cids or not cids[0]:
            raise CompoundNotFoundError(f"No compound found for {identifier!r}")
        return int(cids[0])

    def _heading(self, cid: int, heading: str, parser) -> Optional[float]:
        try:
            data = self._get(
                f"{self.base_url}/pug_view/data/compound/{cid}/JSON",
                params={"heading": heading},
            )
        except requests.RequestException as exc:
            logger.warning("PubChem %s lookup failed for CID %d: %s", heading, cid, exc)
            return None
        for text in _strings(data or {}):
            value = parser(text)
            if value is not None:
                return value
        return None

    def lookup(self, identifier: str) -> CompoundInfo:
        identifier = identifier.strip()
        if not identifier:
            raise InvalidIdentifierError("An identifier is required")
        cas = ""
        if is_cas_number(identifier):
            cas = validate_cas(identifier)

        cid = self._cid(identifier)
        data = self._get(f"{self.base_url}/pug/compound/cid/{cid}/property/{PROPERTY_FIELDS}/JSON")
        properties = (data or {}).get("PropertyTable", {}).get("Properties") or []
        if not properties:
            raise CompoundNotFoundError(f"No properties found for {identifier!r}")
        props = properties[0]
        try:
            mw = float(props["MolecularWeight"])
        except (KeyError, TypeError, ValueError) as exc:
            raise CompoundNotFoundError(f"No molecular weight for {identifier!r}") from exc

        info = CompoundInfo(
            mw=mw,
            smiles=props.get("CanonicalSMILES") or props.get("SMILES") or props.get("IsomericSMILES") or "",
            name=props.get("IUPACName") or "",
            cas=cas,
            melting_point=self._heading(cid, "Melting Point", parse_temperature),
            boiling_point=self._heading(cid, "Boiling Point", parse_temperature),
            density=self._heading(cid, "Density", parse_density),
        )
        logger.info("Resolved %r to CID %d (MW %.2f)", identifier, cid, info.mw)
        return info


@functools.lru_cache(maxsize=1)
def _default_executor() -> ThreadPoolExecutor:
    return ThreadPoolExecutor(max_workers=2, thread_name_prefix="compound-lookup")


def lookup_async(
    client: CompoundLookup,
    identifier: str,
    executor: ThreadPoolExecutor | None = None,
) -> Future:
    """Run ``client.lookup`` off the calling thread."""
    return (executor or _default_executor()).submit(client.lookup, identifier)
