"""AssetApplicationService: read side of assets.

All methods are read-only; the router passes a read-only session.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from src.rwa_assets.application.schemas import AssetListResponse, AssetOut
from src.rwa_assets.domain.repository import AssetRepositoryProtocol
from src.rwa_assets.infrastructure.persistence import AssetRepository
from src.rwa_common.enums import AssetSort
from src.rwa_common.errors import AssetNotFoundError, InvalidQueryError
from src.rwa_common.pubkey import require_pubkey

MAX_QUERY_LEN = 100


def parse_sort(sort: str | None) -> tuple[AssetSort, bool]:
    """`name`, `-price`, ... -> (AssetSort, descending). Default: newest first."""
    if not sort:
        return AssetSort.CREATED, True
    descending = sort.startswith("-")
    key = sort[1:] if descending else sort
    if key == "created_at":
        key = AssetSort.CREATED.value
    try:
        return AssetSort(key), descending
    except ValueError:
        allowed = ", ".join(s.value for s in AssetSort)
        raise InvalidQueryError(f"sort must be one of {allowed} (prefix '-' to reverse)") from None


class AssetApplicationService:
    def __init__(self, repo: AssetRepositoryProtocol | None = None) -> None:
        self._repo: AssetRepositoryProtocol = repo or AssetRepository()

    async def list_assets(
        self,
        db: AsyncSession,
        mint: str | None = None,
        q: str | None = None,
        sort: str | None = None,
    ) -> AssetListResponse:
        if mint is not None:
            require_pubkey(mint, "mint")
        if q is not None:
            q = q.strip() or None
            if q is not None and len(q) > MAX_QUERY_LEN:
                raise InvalidQueryError(f"q longer than {MAX_QUERY_LEN} characters")
        order, descending = parse_sort(sort)
        assets = await self._repo.list_assets(db, mint, q, order.value, descending)
        items = [AssetOut.from_domain(a) for a in assets]
        return AssetListResponse(items=items, total=len(items))

    async def get_asset(self, db: AsyncSession, mint: str) -> AssetOut:
        asset = await self._repo.get_asset_by_mint(db, mint)
        if asset is None:
            raise AssetNotFoundError(mint)
        return AssetOut.from_domain(asset)
