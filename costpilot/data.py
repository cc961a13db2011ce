"""Aggregated billing and utilization records."""

from __future__ import annotations

from dataclasses import dataclass, field

from costpilot.cloud import Provider, SubscriptionType


@dataclass
class ItemInProductBilling:
    """One billed line inside a product's bill."""

    pip_code: str = ""
    product_name: str = ""
    pretax_amount: float = 0.0
    subscription_type: SubscriptionType | None = None
    currency: str = ""


@dataclass
class ProductBilling:
    """Billing of one product, with its line items."""

    product_name: str = ""
    total_amount: float = 0.0
    items: list[ItemInProductBilling] = field(default_factory=list)


@dataclass
class DailyBilling:
    """Billing of one day (``YYYYMMDD``), keyed by pip code."""

    day: str = ""
    products_billing: dict[str, ProductBilling] = field(default_factory=dict)
    total_amount: float = 0.0


@dataclass
class MonthlyBilling:
    """Billing of one month (``YYYYMM``), keyed by product name."""

    month: str = ""
    products_billing: dict[str, ProductBilling] = field(default_factory=dict)
    total_amount: float = 0.0


@dataclass
class YearlyBilling:
    """Total billing of one year."""

    year: str = ""
    total_amount: float = 0.0


@dataclass
class AccountBilling:
    """Yearly billing of one cloud account."""

    account_name: str = ""
    years_billing: dict[str, list[YearlyBilling]] = field(default_factory=dict)
    provider: Provider | None = None


@dataclass
class InstanceCpuUtilization:
    """CPU usage of one instance."""

    instance_id: str = ""
    used_utilization: float = 0.0


@dataclass
class InstanceMemoryUtilization:
    """Memory usage of one instance."""

    instance_id: str = ""
    used_utilization: float = 0.0


@dataclass
class DailyCpuUtilization:
    """CPU usage of all instances on one day."""

    provider: Provider | None = None
    day: str = ""
    utilization: list[InstanceCpuUtilization] = field(default_factory=list)


@dataclass
class DailyMemoryUtilization:
    """Memory usage of all instances on one day."""

    provider: Provider | None = None
    day: str = ""
    utilization: list[InstanceMemoryUtilization] = field(default_factory=list)


@dataclass
class InstanceDetail:
    """Where an instance lives and how it is paid for."""

    provider: Provider | None = None
    instance_id: str = ""
    region_id: str = ""
    region_name: str = ""
    subscription_type: SubscriptionType | None = None