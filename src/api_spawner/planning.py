"""Target planning and selection helpers for bulk runs.

Pure functions: distribute N gateways over accounts and regions, name
them, and select existing APIs by glob pattern or name prefix.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Sequence

from api_spawner.models.gateway import ApiGatewayInfo, CreateTarget, TargetAccount

# Region code -> display label, in prompt order
DEFAULT_REGIONS: dict[str, str] = {
    "us-east-1": "US East (N. Virginia)",
    "us-east-2": "US East (Ohio)",
    "us-west-1": "US West (N. California)",
    "us-west-2": "US West (Oregon)",
    "eu-west-1": "Europe (Ireland)",
    "eu-central-1": "Europe (Frankfurt)",
    "ap-southeast-1": "Asia Pacific (Singapore)",
    "ap-northeast-1": "Asia Pacific (Tokyo)",
}
DEFAULT_REGION_CODES: tuple[str, ...] = tuple(DEFAULT_REGIONS)

MAX_BULK_GATEWAYS = 1000


def parse_csv(value: str | Sequence[str] | None) -> list[str]:
    """Split a comma-separated option (or flatten a list of them), dropping blanks."""
    if value is None:
        return []
    parts = [value] if isinstance(value, str) else list(value)
    items: list[str] = []
    for part in parts:
        items.extend(p.strip() for p in part.split(",") if p.strip())
    return items


def gateways_per_region(total: int, region_count: int) -> int:
    if region_count <= 0:
        return 0
    return math.ceil(total / region_count)


def plan_create_targets(
    accounts: Sequence[TargetAccount],
    regions: Sequence[str],
    total: int,
) -> list[CreateTarget]:
    """Distribute ``total`` gateways over accounts, then regions.

    Each region of an account receives up to ceil(total / len(regions))
    gateways; planning stops as soon as ``total`` targets exist, so later
    accounts may receive none.
    """
    per_region = gateways_per_region(total, len(regions))
    targets: list[CreateTarget] = []

    for account in accounts:
        for region in regions:
            for _ in range(per_region):
                if len(targets) >= total:
                    return targets
                targets.append(
                    CreateTarget(
                        account_id=account.account_id,
                        role_arn=account.role_arn,
                        region=region,
                        external_id=account.external_id,
                        gateway_index=len(targets),
                    )
                )
    return targets


def gateway_name(base_name: str, target: CreateTarget) -> str:
    return f"{base_name}-{target.account_id}-{target.region}-{target.gateway_index}"


def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile a ``*``/``?`` glob into a case-insensitive whole-name regex."""
    parts = []
    for ch in pattern:
        if ch == "*":
            parts.append(".*")
        elif ch == "?":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    return re.compile("".join(parts), re.IGNORECASE)


def filter_by_pattern(apis: Iterable[ApiGatewayInfo], pattern: str) -> list[ApiGatewayInfo]:
    regex = glob_to_regex(pattern)
    return [api for api in apis if regex.fullmatch(api.name)]


def filter_by_prefix(apis: Iterable[ApiGatewayInfo], prefix: str) -> list[ApiGatewayInfo]:
    return [api for api in apis if api.name.startswith(prefix)]


def group_by_account_region(
    apis: Iterable[ApiGatewayInfo],
) -> dict[tuple[str, str], list[ApiGatewayInfo]]:
    """Group APIs by (account, region), preserving first-seen order."""
    groups: dict[tuple[str, str], list[ApiGatewayInfo]] = {}
    for api in apis:
        groups.setdefault((api.account, api.region), []).append(api)
    return groups


def unique_accounts(accounts: Iterable[TargetAccount]) -> list[TargetAccount]:
    """First entry per account ID (the primary role for that account)."""
    seen: dict[str, TargetAccount] = {}
    for account in accounts:
        seen.setdefault(account.account_id, account)
    return list(seen.values())
