"""
Payment-provider catalog operations.

CatalogOperations turns a desired catalog entity (one product with one or
more prices) into create, update or archive calls against the payment
provider. StripeCatalogOperations implements the remote calls with the
Stripe SDK.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Optional

import stripe
from pydantic import BaseModel, Field

from .config.models import PaymentsConfig
from .exceptions import PartialCreateError, RemoteOperationError
from .utils import get_field, paginate_list


class CatalogAction(str, Enum):
    """What a catalog sync did to the remote entity."""

    CREATED = "created"
    UPDATED = "updated"
    ARCHIVED = "archived"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"


class DesiredPrice(BaseModel):
    """A price the remote entity should carry."""

    key: str  # variant id, or the product id for variant-less products
    amount: int = Field(gt=0)
    existing_price_id: Optional[str] = None
    nickname: Optional[str] = None
    metadata: Dict[str, str] = Field(default_factory=dict)


class CatalogEntityState(BaseModel):
    """Desired state of one remote catalog entity."""

    local_id: str
    name: str
    description: str = ""
    active: bool
    sell_status: str
    prices: List[DesiredPrice]
    single_price: bool = True

    def remote_metadata(self) -> Dict[str, str]:
        return {"local_id": self.local_id, "sell_status": self.sell_status}


class CatalogSyncResult(BaseModel):
    """Outcome of syncing one entity."""

    action: CatalogAction
    remote_id: Optional[str] = None
    remote_price_ids: Dict[str, str] = Field(default_factory=dict)
    error: Optional[str] = None


class CatalogOperations(ABC):
    """Interface to the payment-provider catalog."""

    def sync_entity(
        self, desired: CatalogEntityState, existing_remote_id: Optional[str] = None
    ) -> CatalogSyncResult:
        """
        Converge one remote entity toward its desired state.

        Args:
            desired: Desired entity and prices
            existing_remote_id: Remote id recorded in the manifest, if any

        Returns:
            CatalogSyncResult with the action taken and the remote ids
        """
        if existing_remote_id is None:
            if not desired.active:
                return CatalogSyncResult(action=CatalogAction.SKIPPED)
            return self.create_entity(desired)

        if not desired.active:
            self.archive_entity(existing_remote_id)
            return CatalogSyncResult(
                action=CatalogAction.ARCHIVED, remote_id=existing_remote_id
            )

        return self.update_entity(existing_remote_id, desired)

    @abstractmethod
    def create_entity(self, desired: CatalogEntityState) -> CatalogSyncResult:
        """
        Create the entity and all of its prices.

        Raises:
            PartialCreateError: If the entity exists remotely but a price step failed
        """

    @abstractmethod
    def update_entity(
        self, remote_id: str, desired: CatalogEntityState
    ) -> CatalogSyncResult:
        """Update the entity and back-fill or replace prices as needed."""

    @abstractmethod
    def archive_entity(self, remote_id: str) -> None:
        """Deactivate the entity remotely."""


class StripeCatalogOperations(CatalogOperations):
    """Stripe implementation of the catalog interface."""

    def __init__(self, payments_config: PaymentsConfig):
        self.payments_config = payments_config
        self._api_key: Optional[str] = None

    @property
    def api_key(self) -> str:
        # Resolved on first use so validation-only runs need no secret.
        if self._api_key is None:
            self._api_key = self.payments_config.api_key.resolve()
        return self._api_key

    def _product_params(self, desired: CatalogEntityState) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "name": desired.name,
            "active": True,
            "metadata": desired.remote_metadata(),
        }
        if desired.description:
            params["description"] = desired.description
        return params

    def _create_price(self, remote_id: str, price: DesiredPrice) -> str:
        params: Dict[str, Any] = {
            "product": remote_id,
            "unit_amount": price.amount,
            "currency": self.payments_config.currency,
            "metadata": {"local_id": price.key, **price.metadata},
        }
        if price.nickname:
            params["nickname"] = price.nickname
        created = stripe.Price.create(api_key=self.api_key, **params)
        return get_field(created, "id")

    def _list_active_prices(self, remote_id: str) -> List[Any]:
        def list_page(**params):
            return stripe.Price.list(api_key=self.api_key, **params)

        return paginate_list(
            list_page, {"product": remote_id, "active": True, "limit": 100}
        )

    def create_entity(self, desired: CatalogEntityState) -> CatalogSyncResult:
        product = stripe.Product.create(
            api_key=self.api_key, **self._product_params(desired)
        )
        remote_id = get_field(product, "id")

        try:
            price_ids = {
                price.key: self._create_price(remote_id, price)
                for price in desired.prices
            }
            if desired.single_price and desired.prices:
                stripe.Product.modify(
                    remote_id,
                    api_key=self.api_key,
                    default_price=price_ids[desired.prices[0].key],
                )
        except Exception as e:
            raise PartialCreateError(
                f"Created {remote_id} but not its prices: {e}", remote_id
            ) from e

        return CatalogSyncResult(
            action=CatalogAction.CREATED,
            remote_id=remote_id,
            remote_price_ids=price_ids,
        )

    def update_entity(
        self, remote_id: str, desired: CatalogEntityState
    ) -> CatalogSyncResult:
        remote = stripe.Product.retrieve(remote_id, api_key=self.api_key)
        if remote is None:
            raise RemoteOperationError(f"Catalog entity {remote_id} not found")

        changed = False
        params = self._product_params(desired)
        remote_metadata = get_field(remote, "metadata") or {}
        if (
            get_field(remote, "name") != desired.name
            or (get_field(remote, "description") or "") != desired.description
            or get_field(remote, "active") is not True
            or any(
                get_field(remote_metadata, key) != value
                for key, value in desired.remote_metadata().items()
            )
        ):
            if not desired.description and get_field(remote, "description"):
                params["description"] = ""
            stripe.Product.modify(remote_id, api_key=self.api_key, **params)
            changed = True

        active_prices = {
            get_field(price, "id"): price for price in self._list_active_prices(remote_id)
        }
        price_ids: Dict[str, str] = {}
        for price in desired.prices:
            current = active_prices.get(price.existing_price_id or "")
            if current is None and price.existing_price_id is None:
                current = self._adoptable_price(active_prices.values(), price, desired)

            if current is not None and get_field(current, "unit_amount") == price.amount:
                price_ids[price.key] = get_field(current, "id")
                continue

            price_ids[price.key] = self._create_price(remote_id, price)
            changed = True

            # A product's default price cannot be archived, so move the
            # default first.
            if desired.single_price:
                stripe.Product.modify(
                    remote_id, api_key=self.api_key, default_price=price_ids[price.key]
                )

            if current is not None:
                stripe.Price.modify(
                    get_field(current, "id"), api_key=self.api_key, active=False
                )

        return CatalogSyncResult(
            action=CatalogAction.UPDATED if changed else CatalogAction.UNCHANGED,
            remote_id=remote_id,
            remote_price_ids=price_ids,
        )

    @staticmethod
    def _adoptable_price(prices, price: DesiredPrice, desired: CatalogEntityState):
        """
        An active remote price that already serves this key, for manifests
        that lost (or never recorded) the price id.
        """
        for candidate in prices:
            if get_field(candidate, "unit_amount") != price.amount:
                continue
            metadata = get_field(candidate, "metadata") or {}
            local_id = get_field(metadata, "local_id")
            variant_id = get_field(metadata, "variant_id")
            if price.key in (local_id, variant_id):
                return candidate
            if desired.single_price and local_id is None and variant_id is None:
                return candidate
        return None

    def archive_entity(self, remote_id: str) -> None:
        stripe.Product.modify(remote_id, api_key=self.api_key, active=False)
