"""
Bundled State -> LGA -> Ward -> Polling Unit dataset and name helpers.

The dataset ships with the package as a nested JSON tree:

    [{"state": "lagos", "lgas": [{"lga": "ikeja", "wards": [
        {"ward": "ojodu", "polling_units": ["ojodu-grammar-school", ...]}]}]}]

Every id in the tree is a raw kebab-case slug; display names are derived with
format_name() at normalization time.
"""

import json
import logging
import re
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger("farmreg.locations")

DATA_DIR = Path(__file__).resolve().parents[1] / "data"
HIERARCHY_PATH = DATA_DIR / "hierarchy.json"

# 36 states plus the Federal Capital Territory. Small enough to ship inline.
BUNDLED_STATES = [
    ("abia", "Abia", "AB"),
    ("adamawa", "Adamawa", "AD"),
    ("akwa-ibom", "Akwa Ibom", "AI"),
    ("anambra", "Anambra", "AN"),
    ("bauchi", "Bauchi", "BA"),
    ("bayelsa", "Bayelsa", "BY"),
    ("benue", "Benue", "BE"),
    ("borno", "Borno", "BO"),
    ("cross-river", "Cross River", "CR"),
    ("delta", "Delta", "DE"),
    ("ebonyi", "Ebonyi", "EB"),
    ("edo", "Edo", "ED"),
    ("ekiti", "Ekiti", "EK"),
    ("enugu", "Enugu", "EN"),
    ("abuja", "FCT - Abuja", "FC"),
    ("gombe", "Gombe", "GO"),
    ("imo", "Imo", "IM"),
    ("jigawa", "Jigawa", "JI"),
    ("kaduna", "Kaduna", "KD"),
    ("kano", "Kano", "KN"),
    ("katsina", "Katsina", "KT"),
    ("kebbi", "Kebbi", "KE"),
    ("kogi", "Kogi", "KO"),
    ("kwara", "Kwara", "KW"),
    ("lagos", "Lagos", "LA"),
    ("nasarawa", "Nasarawa", "NA"),
    ("niger", "Niger", "NI"),
    ("ogun", "Ogun", "OG"),
    ("ondo", "Ondo", "ON"),
    ("osun", "Osun", "OS"),
    ("oyo", "Oyo", "OY"),
    ("plateau", "Plateau", "PL"),
    ("rivers", "Rivers", "RI"),
    ("sokoto", "Sokoto", "SO"),
    ("taraba", "Taraba", "TA"),
    ("yobe", "Yobe", "YO"),
    ("zamfara", "Zamfara", "ZA"),
]

_WHITESPACE = re.compile(r"\s+")
_NON_SLUG = re.compile(r"[^a-z0-9-]+")


def format_name(raw_id: str) -> str:
    """
    Turn a kebab-case id into a display name ("lagos-island" -> "Lagos Island").

    Only the first character of each hyphen-separated word is upper-cased, so an
    already formatted name comes back unchanged.
    """
    if not raw_id:
        return ""
    words = [word for word in str(raw_id).split("-") if word]
    return " ".join(word[:1].upper() + word[1:] for word in words)


def normalize_id(value: str) -> str:
    """Case-insensitive, hyphen-normalized key used for dataset matching."""
    return _WHITESPACE.sub("-", str(value or "").strip().lower())


def slugify(value) -> str:
    """Stable lowercase hyphenated slug for ids coming from outside the bundle."""
    slug = _NON_SLUG.sub("-", normalize_id(value))
    return re.sub(r"-{2,}", "-", slug).strip("-")


def _load_tree(path: Path) -> list:
    try:
        with path.open(encoding="utf-8") as fh:
            data = json.load(fh)
    except FileNotFoundError:
        logger.error("Hierarchy dataset not found: %s", path)
        return []
    except json.JSONDecodeError as exc:
        logger.error("Invalid JSON in %s: %s", path.name, exc)
        return []
    if not isinstance(data, list):
        logger.error("Hierarchy dataset %s must be a list of states", path.name)
        return []
    logger.info("Loaded hierarchy for %d states from %s", len(data), path.name)
    return data


class HierarchyDataSource:
    """
    Read-only view over the bundled hierarchy tree.

    Lookups return raw child ids (slugs) or None when the parent id is not in the
    tree or has no children; normalization into AdministrativeUnit objects is the
    resolver's job.
    """

    def __init__(self, tree: Optional[list] = None, path: Path = HIERARCHY_PATH):
        self.path = path
        self._inline_tree = tree
        self._tree = tree

    @property
    def tree(self) -> list:
        if self._tree is None:
            self._tree = _load_tree(self.path)
        return self._tree

    def reload(self) -> None:
        """Forget the file-backed tree so the next lookup re-reads it; inline trees are kept."""
        self._tree = self._inline_tree

    def states(self) -> list:
        return list(BUNDLED_STATES)

    def lgas(self, state_id: str) -> Optional[List[str]]:
        key = normalize_id(state_id)
        for state in self.tree:
            if normalize_id(state.get("state")) == key:
                children = [lga.get("lga") for lga in state.get("lgas") or [] if lga.get("lga")]
                return children or None
        return None

    def wards(self, lga_id: str) -> Optional[List[str]]:
        key = normalize_id(lga_id)
        for state in self.tree:
            for lga in state.get("lgas") or []:
                if normalize_id(lga.get("lga")) == key:
                    children = [ward.get("ward") for ward in lga.get("wards") or [] if ward.get("ward")]
                    if children:
                        logger.debug("Found %d wards for LGA %s in state %s", len(children), lga_id, state.get("state"))
                        return children
        return None

    def polling_units(self, ward_id: str) -> Optional[List[str]]:
        key = normalize_id(ward_id)
        for state in self.tree:
            for lga in state.get("lgas") or []:
                for ward in lga.get("wards") or []:
                    if normalize_id(ward.get("ward")) == key:
                        children = [pu for pu in ward.get("polling_units") or [] if pu]
                        if children:
                            return children
        return None

    def stats(self) -> dict:
        lgas = wards = units = 0
        for state in self.tree:
            for lga in state.get("lgas") or []:
                lgas += 1
                for ward in lga.get("wards") or []:
                    wards += 1
                    units += len(ward.get("polling_units") or [])
        return {
            "total_states": len(BUNDLED_STATES),
            "total_lgas": lgas,
            "total_wards": wards,
            "total_polling_units": units,
        }
