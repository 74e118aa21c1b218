"""
Pool data providers.

Turns Balancer-style pool records into validated PoolSnapshot objects, from
memory, from a snapshot file, or from a paginated subgraph query.
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import requests
import yaml

from .exceptions import DataError, NetworkError, ValidationError
from .types import PoolSnapshot, Reserve, Token
from .utils import get_logger

logger = get_logger(__name__)

POOLS_QUERY = """
query Pools($first: Int!, $lastId: String!) {
  pools(
    first: $first
    orderBy: id
    orderDirection: asc
    where: { id_gt: $lastId, totalShares_gt: 0 }
  ) {
    id
    poolType
    tokens {
      address
      symbol
      balance
      weight
    }
  }
}
"""


def pool_from_dict(record: Dict[str, Any], source: Optional[str] = None) -> PoolSnapshot:
    """
    Parse one pool record into a snapshot.

    Accepts ``{"id": ..., "tokens": [{"address"|"token", "balance", "weight"}]}``.
    Tokens without a weight (stable pools) get equal weights of 1/n.

    Raises:
        DataError: If the record is not shaped like a pool or fails validation
    """
    if not isinstance(record, dict):
        raise DataError(
            f"Pool record must be a mapping, got {type(record).__name__}",
            source=source,
        )

    pool_id = str(record.get("id") or record.get("address") or "")
    if not pool_id:
        raise DataError("Pool record missing 'id'", source=source)

    tokens = record.get("tokens")
    if not isinstance(tokens, list):
        raise DataError(
            f"Pool {pool_id} 'tokens' must be a list", source=source, pool_id=pool_id
        )

    # Equal weights only when the whole pool omits them (stable pools)
    weighted = [
        isinstance(entry, dict) and entry.get("weight") is not None for entry in tokens
    ]
    if any(weighted) and not all(weighted):
        raise DataError(
            f"Pool {pool_id} has weights for only some of its tokens",
            source=source,
            pool_id=pool_id,
        )
    default_weight = 1.0 / len(tokens) if tokens else 1.0
    reserves = []
    try:
        for entry in tokens:
            if not isinstance(entry, dict):
                raise DataError(
                    f"Pool {pool_id} token entry must be a mapping",
                    source=source,
                    pool_id=pool_id,
                )
            token = entry.get("address") or entry.get("token")
            weight = entry.get("weight")
            reserves.append(
                Reserve(
                    token=_normalize_token(token),
                    balance=entry.get("balance"),
                    weight=default_weight if weight is None else weight,
                )
            )
        return PoolSnapshot(pool_id=pool_id, reserves=tuple(reserves))
    except ValidationError as e:
        raise DataError(
            f"Invalid pool {pool_id}: {e}",
            source=source,
            pool_id=pool_id,
            details=e.details,
        ) from e


def _normalize_token(token: Any) -> Token:
    """Addresses compare case-insensitively; symbols are kept as given."""
    if not token:
        return Token("")
    text = str(token).strip()
    if text.lower().startswith("0x"):
        return Token(text.lower())
    return Token(text)


def pools_from_records(
    records: Iterable[Dict[str, Any]],
    source: Optional[str] = None,
    strict: bool = False,
) -> List[PoolSnapshot]:
    """
    Parse many pool records.

    Args:
        records: Raw pool records
        source: Name used in log lines and errors
        strict: If True, the first bad record raises; otherwise it is skipped

    Returns:
        Parsed snapshots in input order
    """
    pools = []
    skipped = 0
    for record in records:
        try:
            pools.append(pool_from_dict(record, source=source))
        except DataError as e:
            if strict:
                raise
            skipped += 1
            logger.warning("Skipping malformed pool record: %s", e)

    if skipped:
        logger.info("Parsed %d pools, skipped %d malformed records", len(pools), skipped)
    return pools


class StaticPoolProvider:
    """In-memory provider returning a fixed snapshot set."""

    def __init__(self, pools: Iterable[PoolSnapshot]):
        self._pools = tuple(pools)

    def fetch_all_pools(self) -> List[PoolSnapshot]:
        return list(self._pools)


class FilePoolProvider:
    """
    Reads pool snapshots from a YAML or JSON file on every fetch.

    The file holds either a list of pool records or a mapping with a
    ``pools`` key.
    """

    def __init__(self, path: Union[str, Path], strict: bool = False):
        self.path = Path(path)
        self.strict = strict

    def fetch_all_pools(self) -> List[PoolSnapshot]:
        if not self.path.exists():
            raise DataError(f"Pool file not found: {self.path}", source=str(self.path))

        try:
            with open(self.path, "r") as f:
                if self.path.suffix.lower() == ".json":
                    raw = json.load(f)
                else:
                    raw = yaml.safe_load(f)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise DataError(
                f"Failed to parse pool file {self.path}: {e}", source=str(self.path)
            ) from e

        if isinstance(raw, dict):
            raw = raw.get("pools")
        if not isinstance(raw, list):
            raise DataError(
                f"Pool file {self.path} must contain a list of pools",
                source=str(self.path),
            )

        return pools_from_records(raw, source=str(self.path), strict=self.strict)


class SubgraphPoolProvider:
    """
    Fetches every pool from a Balancer subgraph endpoint.

    Pages through the ``pools`` query ordered by id, asking each time for
    pools with an id above the last one seen, until a short page comes back
    or ``max_pages`` is reached.
    """

    def __init__(
        self,
        url: str,
        page_size: int = 1000,
        max_pages: Optional[int] = None,
        timeout: float = 30,
        session: Optional[requests.Session] = None,
    ):
        if not url:
            raise ValueError("Subgraph URL is required")
        self.url = url
        self.page_size = page_size
        self.max_pages = max_pages
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch_all_pools(self) -> List[PoolSnapshot]:
        records: List[Dict[str, Any]] = []
        last_id = ""
        page = 0
        while self.max_pages is None or page < self.max_pages:
            batch = self._fetch_page(last_id)
            records.extend(batch)
            page += 1
            if len(batch) < self.page_size:
                break
            last = batch[-1]
            if not isinstance(last, dict) or not last.get("id"):
                raise DataError(
                    "Subgraph page ended with a pool without 'id'; cannot page further",
                    source=self.url,
                )
            last_id = str(last["id"])

        logger.debug("Fetched %d pool records in %d pages from %s", len(records), page, self.url)
        return pools_from_records(records, source=self.url)

    def _fetch_page(self, last_id: str) -> List[Dict[str, Any]]:
        payload = {
            "query": POOLS_QUERY,
            "variables": {"first": self.page_size, "lastId": last_id},
        }
        try:
            response = self.session.post(self.url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise NetworkError(
                f"Subgraph request failed: {e}", endpoint=self.url
            ) from e

        if response.status_code != 200:
            raise NetworkError(
                f"Subgraph returned HTTP {response.status_code}",
                endpoint=self.url,
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise DataError(
                f"Subgraph returned invalid JSON: {e}", source=self.url
            ) from e

        if body.get("errors"):
            raise DataError(
                f"Subgraph query failed: {body['errors']}",
                source=self.url,
                details={"errors": body["errors"]},
            )

        pools = (body.get("data") or {}).get("pools")
        if not isinstance(pools, list):
            raise DataError("Subgraph response missing data.pools", source=self.url)
        return pools
