"""Tencent Cloud client: account bills from the billing API.

The client works with a billing service client that is handed in. Its
``describe_bill_detail`` method takes a mapping of request parameters named
as in the Tencent Cloud API and returns the JSON response as a mapping,
holding ``Response`` with ``Total`` and ``DetailSet``. Transport failures
are raised by the service client and pass through.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any, Protocol

from costpilot.cloud import Provider, SubscriptionType
from costpilot.types import (
    AccountBillItem,
    DataInQueryAccountBill,
    DescribeInstanceBill,
    DescribeInstanceBillRequest,
    DescribeInstances,
    DescribeInstancesRequest,
    DescribeMetricList,
    DescribeMetricListRequest,
    DescribeRegions,
    DescribeRegionsRequest,
    Granularity,
    QueryAccountBillRequest,
    QueryAvailableInstances,
    QueryAvailableInstancesRequest,
)

BILLING_ENDPOINT = "billing.tencentcloudapi.com"
CVM_ENDPOINT = "cvm.tencentcloudapi.com"
MONITOR_ENDPOINT = "monitor.tencentcloudapi.com"

MAX_PAGE_SIZE = 100
_DATE_FORMAT = "%Y-%m-%d"

Response = Mapping[str, Any]


class BillingClient(Protocol):
    def describe_bill_detail(self, params: Mapping[str, Any]) -> Response | None: ...


def convert_pretax_amount(price: str | None) -> float:
    """Parse a cost string; missing or malformed prices count as zero."""
    if price is None:
        return 0.0
    try:
        return float(price)
    except ValueError:
        return 0.0


def parse_date_start_end_time(date: str) -> tuple[str, str]:
    """First and last second of a ``YYYY-MM-DD`` day, as billing API timestamps."""
    if not date:
        raise ValueError("date empty")
    day = datetime.strptime(date, _DATE_FORMAT).strftime(_DATE_FORMAT)
    return f"{day} 00:00:00", f"{day} 23:59:59"


def convert_currency(price_unit: str) -> str:
    """Currency code from a price unit such as ``元/GB/月``, or ``""``."""
    unit = price_unit.split("/")[0]
    if unit == "元":
        return "CNY"
    if unit == "刀":
        return "USD"
    return ""


def convert_subscription_type(pay_mode_name: str) -> SubscriptionType:
    """Map a Tencent pay mode name to the common subscription type."""
    if pay_mode_name == "包年包月":
        return SubscriptionType.PREPAID
    if pay_mode_name == "按量计费":
        return SubscriptionType.POSTPAID
    return SubscriptionType.UNDEFINED


def _component_cost(components: Sequence[Mapping[str, Any]] | None) -> float:
    return sum(convert_pretax_amount(c.get("RealCost")) for c in components or [])


def _group_key(bill: Mapping[str, Any]) -> str:
    return (bill.get("BusinessCodeName") or "") + (bill.get("PayModeName") or "")


def convert_account_bill(
    request: QueryAccountBillRequest, bills: Sequence[Mapping[str, Any]] | None
) -> list[AccountBillItem]:
    """Sum bill details per product and pay mode, or into one total."""
    if bills is None:
        raise ValueError("invalid bill list")
    if not bills:
        return []
    components = bills[0].get("ComponentSet") or []
    currency = convert_currency((components[0].get("PriceUnit") or "") if components else "")
    billing_date = request.billing_date if request.granularity == Granularity.DAILY else ""

    costs: dict[str, float] = {}
    for bill in bills:
        key = _group_key(bill)
        costs[key] = costs.get(key, 0.0) + _component_cost(bill.get("ComponentSet"))

    if not request.is_group_by_product:
        return [
            AccountBillItem(
                billing_date=billing_date,
                currency=currency,
                pretax_amount=sum(costs.values()),
            )
        ]

    items: list[AccountBillItem] = []
    seen: set[str] = set()
    for bill in bills:
        key = _group_key(bill)
        if key in seen:
            continue
        seen.add(key)
        items.append(
            AccountBillItem(
                pip_code=bill.get("BusinessCode") or "",
                product_name=bill.get("BusinessCodeName") or "",
                billing_date=billing_date,
                subscription_type=convert_subscription_type(bill.get("PayModeName") or ""),
                currency=currency,
                pretax_amount=costs[key],
            )
        )
    return items


class TencentCloud:
    """Cost queries against Tencent Cloud."""

    def __init__(self, billing_client: BillingClient) -> None:
        self.billing_client = billing_client

    def provider_type(self) -> Provider:
        return Provider.TENCENT

    def query_account_bill(self, request: QueryAccountBillRequest) -> DataInQueryAccountBill:
        """Fetch every page of bill details and sum them up."""
        params: dict[str, Any] = {
            "NeedRecordNum": 1,  # ask for the total count
            "Limit": MAX_PAGE_SIZE,
            "Offset": 0,
        }
        if request.granularity == Granularity.MONTHLY:
            params["Month"] = request.billing_cycle
        elif request.granularity == Granularity.DAILY:
            params["BeginTime"], params["EndTime"] = parse_date_start_end_time(
                request.billing_date
            )
        else:
            raise ValueError("Unknown Granularity")

        bills: list[Mapping[str, Any]] | None = None
        while True:
            response = self.billing_client.describe_bill_detail(dict(params))
            body = (response or {}).get("Response")
            if body is None or body.get("Total") is None:
                break
            if bills is None:
                bills = []
            page = body.get("DetailSet") or []
            bills.extend(page)
            if len(bills) >= int(body["Total"]) or not page:
                break
            params["Offset"] += MAX_PAGE_SIZE

        items = convert_account_bill(request, bills)
        return DataInQueryAccountBill(
            billing_cycle=request.billing_cycle,
            total_count=len(items),
            items=items,
        )

    def describe_metric_list(self, request: DescribeMetricListRequest) -> DescribeMetricList:
        """Metrics are not offered for this provider; always empty."""
        return DescribeMetricList()

    def describe_regions(self, request: DescribeRegionsRequest) -> DescribeRegions:
        """Regions are not offered for this provider; always empty."""
        return DescribeRegions()

    def describe_instance_bill(
        self, request: DescribeInstanceBillRequest, is_all: bool
    ) -> DescribeInstanceBill:
        """Instance bills are not offered for this provider; always empty."""
        return DescribeInstanceBill()

    def query_available_instances(
        self, request: QueryAvailableInstancesRequest
    ) -> QueryAvailableInstances:
        """Available-instance queries are not offered for this provider; always empty."""
        return QueryAvailableInstances()

    def describe_instances(self, request: DescribeInstancesRequest) -> DescribeInstances:
        """Instance description is not offered for this provider; always empty."""
        return DescribeInstances()