"""Keyword-based allergen detection against the user's allergen profile."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class CommonAllergen(Enum):
    """Major food allergens, each with a display name and keyword list."""

    MILK = ("Milk", (
        "milk", "dairy", "lactose", "casein", "whey", "cream", "butter",
        "cheese", "yogurt",
    ))
    EGGS = ("Eggs", (
        "egg", "eggs", "albumin", "globulin", "lysozyme", "mayonnaise",
        "meringue",
    ))
    PEANUTS = ("Peanuts", ("peanut", "peanuts", "groundnut", "arachis"))
    TREE_NUTS = ("Tree Nuts", (
        "almond", "cashew", "walnut", "pecan", "pistachio", "hazelnut",
        "macadamia", "brazil nut", "chestnut", "pine nut",
    ))
    SOY = ("Soy", ("soy", "soya", "soybean", "edamame", "tofu", "tempeh", "miso"))
    WHEAT = ("Wheat", (
        "wheat", "flour", "bread", "pasta", "semolina", "durum", "spelt",
        "kamut", "farina",
    ))
    FISH = ("Fish", (
        "fish", "cod", "salmon", "tuna", "halibut", "anchovy", "bass",
        "catfish", "flounder", "haddock", "perch", "pike", "pollock",
        "snapper", "sole", "swordfish", "tilapia", "trout",
    ))
    SHELLFISH = ("Shellfish", (
        "shellfish", "shrimp", "crab", "lobster", "crawfish", "crayfish",
        "prawn", "scallop", "clam", "mussel", "oyster", "squid", "octopus",
    ))
    SESAME = ("Sesame", ("sesame", "tahini", "halvah", "hummus"))

    def __init__(self, display_name: str, keywords: tuple[str, ...]) -> None:
        self.display_name = display_name
        self.keywords = keywords

    @classmethod
    def lookup(cls, name: str) -> CommonAllergen | None:
        """Resolve an enum name ("TREE_NUTS") or display name ("Tree Nuts")."""
        key = name.strip().lower()
        for allergen in cls:
            if key in (allergen.name.lower(), allergen.display_name.lower()):
                return allergen
        return None


@dataclass(frozen=True)
class AllergenProfile:
    """The user's allergens: selected common ones plus free-text custom names."""

    common: tuple[CommonAllergen, ...] = ()
    custom: tuple[str, ...] = ()

    @classmethod
    def from_names(
        cls, common: Iterable[str] = (), custom: Iterable[str] = ()
    ) -> AllergenProfile:
        selected: list[CommonAllergen] = []
        for name in common:
            allergen = CommonAllergen.lookup(name)
            if allergen is None:
                logger.warning("Unknown common allergen ignored: %r", name)
                continue
            if allergen not in selected:
                selected.append(allergen)
        custom_names = tuple(c.strip() for c in custom if c and c.strip())
        return cls(common=tuple(selected), custom=custom_names)

    def names(self) -> list[str]:
        """Display names in profile order (common first, then custom)."""
        return [a.display_name for a in self.common] + list(self.custom)

    def is_empty(self) -> bool:
        return not self.common and not self.custom


class AllergenMatcher:
    """Case-insensitive substring matching of allergen keywords."""

    @staticmethod
    def match(text: str, profile: AllergenProfile) -> list[str]:
        lower = text.lower()
        detected: list[str] = []

        for allergen in profile.common:
            if any(keyword in lower for keyword in allergen.keywords):
                detected.append(allergen.display_name)

        for custom in profile.custom:
            if custom.lower() in lower:
                detected.append(custom)

        return _dedupe(detected)

    @staticmethod
    def canonicalize(names: Iterable[str], profile: AllergenProfile) -> list[str]:
        """Map free-form allergen names onto the profile's display names.

        Names that do not correspond to anything in the profile are dropped,
        so the result is always a subset of ``profile.names()``.
        """
        wanted = [n.strip().lower() for n in names if n and n.strip()]
        if not wanted:
            return []

        result: list[str] = []
        for allergen in profile.common:
            aliases = {allergen.display_name.lower(), allergen.name.lower()}
            aliases.update(allergen.keywords)
            if any(name in aliases for name in wanted):
                result.append(allergen.display_name)
        for custom in profile.custom:
            if custom.lower() in wanted:
                result.append(custom)
        return _dedupe(result)


def _dedupe(items: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result
