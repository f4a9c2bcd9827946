from __future__ import annotations

import re
from enum import Enum
from typing import Iterable, Optional


class TierKind(str, Enum):
    COORDINATION = "zookeeper"
    SEARCH = "solr"
    REPOSITORY = "fcrepo"
    IMAGE_SERVER = "cantaloupe"
    WEB = "webapps"


TIER_PATTERNS: dict[TierKind, re.Pattern[str]] = {
    TierKind.COORDINATION: re.compile(r"-zookeeper"),
    TierKind.SEARCH: re.compile(r"-solr"),
    TierKind.REPOSITORY: re.compile(r"-fcrepo"),
    TierKind.IMAGE_SERVER: re.compile(r"-cantaloupe"),
    TierKind.WEB: re.compile(r"-(webapp|workers)"),
}


def matches_tier(environment: str, tier: TierKind) -> bool:
    return TIER_PATTERNS[tier].search(environment) is not None


def environments_in_tier(environments: Iterable[str], tier: TierKind) -> list[str]:
    return [environment for environment in environments if matches_tier(environment, tier)]


def first_environment_in_tier(environments: Iterable[str], tier: TierKind) -> Optional[str]:
    return next(iter(environments_in_tier(environments, tier)), None)
