"""
Partner Tier Configuration
==========================

Single source of truth for per-tier quarterly revenue targets, MDF
allocation budgets and investment profiles, plus the directory mapping
partners to tiers.

Canonical quarterly targets:
- Strategic: 200,000 (~800k annually)
- Select: 125,000 (~500k annually)
- Registered: 75,000 (~300k annually)

MDF allocation defaults to the flat DEFAULT_MDF_ALLOCATION for every tier.
With QBR_USE_TIERED_MDF (or tiered_mdf=True) each tier's marketing fund
budget is used instead. Tier-specific values can also be supplied through
a JSON tier file.
"""

import json
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Optional, Union

from config import DEFAULT_MDF_ALLOCATION, TIER_CONFIG_FILE, USE_TIERED_MDF
from exceptions import PartnerNotFoundError, TierConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PartnerTier:
    name: str
    revenue_target: float               # Quarterly
    mdf_allocation: float = DEFAULT_MDF_ALLOCATION

    # Investment profile; defaults are the Registered baseline
    base_enablement_cost: float = 8000
    sales_coaching_multiplier: float = 1.0
    technical_support_cost: float = 3000
    marketing_fund_budget: float = 10000


DEFAULT_TIERS: Dict[str, PartnerTier] = {
    "Strategic": PartnerTier(
        "Strategic", 200000,
        base_enablement_cost=25000,     # High-touch enablement
        sales_coaching_multiplier=1.5,
        technical_support_cost=15000,   # Dedicated technical resources
        marketing_fund_budget=50000
    ),
    "Select": PartnerTier(
        "Select", 125000,
        base_enablement_cost=15000,
        sales_coaching_multiplier=1.2,
        technical_support_cost=8000,    # Shared technical resources
        marketing_fund_budget=25000
    ),
    "Registered": PartnerTier(
        "Registered", 75000,
        base_enablement_cost=8000,      # Self-service + basic training
        sales_coaching_multiplier=1.0,
        technical_support_cost=3000,
        marketing_fund_budget=10000
    ),
}

_PROFILE_FIELDS = (
    "base_enablement_cost",
    "sales_coaching_multiplier",
    "technical_support_cost",
    "marketing_fund_budget",
)


def _tier_from_entry(name: str, entry: dict, tiered_mdf: bool) -> PartnerTier:
    if not isinstance(entry, dict) or "revenue_target" not in entry:
        raise TierConfigurationError(f"Tier {name} is missing revenue_target", tier=name)

    try:
        values = {"revenue_target": float(entry["revenue_target"])}
        for key in _PROFILE_FIELDS:
            if key in entry:
                values[key] = float(entry[key])
        if "mdf_allocation" in entry:
            values["mdf_allocation"] = float(entry["mdf_allocation"])
    except (TypeError, ValueError):
        raise TierConfigurationError(f"Tier {name} has a non-numeric budget", tier=name)

    if any(value < 0 for value in values.values()):
        raise TierConfigurationError(f"Tier {name} has a negative budget", tier=name)

    tier = PartnerTier(name, **values)
    if tiered_mdf and "mdf_allocation" not in entry:
        tier = replace(tier, mdf_allocation=tier.marketing_fund_budget)
    return tier


def load_tier_table(
    path: Union[str, Path, None] = None,
    tiered_mdf: Optional[bool] = None
) -> Dict[str, PartnerTier]:
    """
    Load the tier table.

    Without a path (and without QBR_TIER_CONFIG_FILE set) the canonical
    DEFAULT_TIERS are returned. The JSON file maps tier name to
    {"revenue_target": ..., "mdf_allocation": ..., <investment profile>};
    everything except revenue_target is optional.

    Args:
        path: JSON tier file
        tiered_mdf: Use marketing_fund_budget as the MDF allocation where no
            explicit mdf_allocation is given; defaults to QBR_USE_TIERED_MDF
    """
    tiered_mdf = USE_TIERED_MDF if tiered_mdf is None else tiered_mdf
    path = path or TIER_CONFIG_FILE
    if not path:
        if tiered_mdf:
            return {
                name: replace(tier, mdf_allocation=tier.marketing_fund_budget)
                for name, tier in DEFAULT_TIERS.items()
            }
        return dict(DEFAULT_TIERS)

    try:
        raw = json.loads(Path(path).read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise TierConfigurationError(f"Cannot read tier configuration {path}: {e}")

    if not isinstance(raw, dict) or not raw:
        raise TierConfigurationError(f"Tier configuration {path} must be a non-empty JSON object")

    tiers = {name: _tier_from_entry(name, entry, tiered_mdf) for name, entry in raw.items()}

    logger.info(f"Loaded {len(tiers)} partner tiers from {path}")
    return tiers


class PartnerDirectory:
    """Maps partner ids to tiers and resolves their targets."""

    def __init__(
        self,
        partner_tiers: Dict[str, str],
        tiers: Optional[Dict[str, PartnerTier]] = None
    ):
        """
        Args:
            partner_tiers: {partner_id: tier_name}
            tiers: Tier table; defaults to load_tier_table()
        """
        self.tiers = tiers if tiers is not None else load_tier_table()
        for partner_id, tier_name in partner_tiers.items():
            if tier_name not in self.tiers:
                raise TierConfigurationError(
                    f"Partner {partner_id} references unknown tier {tier_name}", tier=tier_name
                )
        self._partner_tiers = dict(partner_tiers)

    def partner_ids(self):
        return list(self._partner_tiers)

    def __contains__(self, partner_id: str) -> bool:
        return partner_id in self._partner_tiers

    def tier_for(self, partner_id: str) -> PartnerTier:
        try:
            return self.tiers[self._partner_tiers[partner_id]]
        except KeyError:
            raise PartnerNotFoundError(partner_id)

    def revenue_target_for(self, partner_id: str) -> float:
        return self.tier_for(partner_id).revenue_target

    def mdf_allocation_for(self, partner_id: str) -> float:
        return self.tier_for(partner_id).mdf_allocation
