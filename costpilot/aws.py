"""AWS client: cost explorer billing, EC2 inventory and CloudWatch metrics.

The client works with three service clients that are handed in, shaped
like the boto3 clients of the same names. Each is called with keyword
arguments named as in the AWS API and returns the response as a mapping:

* ``cost_explorer.get_cost_and_usage(**params)``;
* ``ec2.describe_regions()``, ``ec2.describe_instances(InstanceIds=...)``
  and ``ec2.describe_reserved_instances()``;
* ``cloudwatch.get_metric_data(**params)``.

Transport failures are raised by the service clients and pass through.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import date, datetime, timedelta
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
    ItemDescribeInstance,
    ItemRegion,
    MetricItem,
    MetricSample,
    QueryAccountBillRequest,
    QueryAvailableInstances,
    QueryAvailableInstancesRequest,
)

log = logging.getLogger(__name__)

CPU_UTILIZATION = "CPUUtilization"
MEMORY_UTILIZATION = "mem_used_percent"
NAMESPACE_CPU = "AWS/EC2"
NAMESPACE_MEMORY = "CWAgent"
INSTANCE_ID_DIMENSION = "InstanceId"

BLENDED_COST = "BlendedCost"
ON_DEMAND = "On Demand Instances"
STANDARD_RESERVED = "Standard Reserved Instances"
RESERVED_STATE_ACTIVE = "active"

_DATE_FORMAT = "%Y-%m-%d"
_MONTH_FORMAT = "%Y-%m"

Response = Mapping[str, Any]


class CostExplorerClient(Protocol):
    def get_cost_and_usage(self, **params: Any) -> Response: ...


class Ec2Client(Protocol):
    def describe_regions(self, **params: Any) -> Response: ...

    def describe_instances(self, **params: Any) -> Response: ...

    def describe_reserved_instances(self, **params: Any) -> Response: ...


class CloudWatchClient(Protocol):
    def get_metric_data(self, **params: Any) -> Response: ...


def _years_back(moment: datetime, years: int) -> datetime:
    try:
        return moment.replace(year=moment.year - years)
    except ValueError:  # 29 February in a non-leap year
        return moment.replace(year=moment.year - years, day=28)


def _next_month(day: date) -> date:
    if day.month == 12:
        return day.replace(year=day.year + 1, month=1)
    return day.replace(month=day.month + 1)


def _is_recent(text: str, fmt: str, now: datetime | None) -> bool:
    try:
        moment = datetime.strptime(text, fmt)
    except ValueError:
        return False
    return moment >= _years_back(now or datetime.now(), 1)


def is_valid_date(date: str, now: datetime | None = None) -> bool:
    """Whether a ``YYYY-MM-DD`` date lies within the last year (cost data limit)."""
    return _is_recent(date, _DATE_FORMAT, now)


def is_valid_month(month: str, now: datetime | None = None) -> bool:
    """Whether a ``YYYY-MM`` month starts within the last year."""
    return _is_recent(month, _MONTH_FORMAT, now)


def convert_charge_type(charge_type: str) -> SubscriptionType | None:
    """Map an AWS purchase type to the common subscription type."""
    if charge_type == ON_DEMAND:
        return SubscriptionType.POSTPAID
    if charge_type == STANDARD_RESERVED:
        return SubscriptionType.PREPAID
    return None


def convert_amount(amount: str | None) -> float:
    """Parse a cost explorer amount string."""
    if amount is None:
        raise ValueError("amount is missing")
    return float(amount)


def instance_name_from_tags(tags: Iterable[Mapping[str, str]] | None) -> str:
    """Value of the ``Name`` tag, or ``""``."""
    for tag in tags or ():
        if tag.get("Key") == "Name":
            return tag.get("Value", "")
    return ""


def _to_millis(value: Any) -> int:
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    return int(value)


def _period_seconds(period: str) -> int:
    try:
        return int(period)
    except ValueError:
        return 0


class AWSCloud:
    """Cost and resource queries against AWS."""

    def __init__(
        self,
        cost_explorer: CostExplorerClient,
        ec2: Ec2Client,
        cloudwatch: CloudWatchClient,
    ) -> None:
        self.cost_explorer = cost_explorer
        self.ec2 = ec2
        self.cloudwatch = cloudwatch

    def provider_type(self) -> Provider:
        return Provider.AWS

    def query_account_bill(self, request: QueryAccountBillRequest) -> DataInQueryAccountBill:
        """Account bill; grouped bills cover on-demand and reserved purchases."""
        if request.is_group_by_product:
            items = self.query_by_filter(request, ON_DEMAND)
            items += self.query_by_filter(request, STANDARD_RESERVED)
        else:
            items = self.query_by_filter(request, "")
        return DataInQueryAccountBill(
            billing_cycle=request.billing_cycle,
            total_count=len(items),
            items=items,
        )

    def query_by_filter(
        self, request: QueryAccountBillRequest, charge_type: str
    ) -> list[AccountBillItem]:
        """Cost of one billing period, optionally restricted to a purchase type."""
        if request.granularity == Granularity.MONTHLY:
            if not is_valid_month(request.billing_cycle):
                return []
            start = datetime.strptime(request.billing_cycle + "-01", _DATE_FORMAT).date()
            end = _next_month(start)
        elif request.granularity == Granularity.DAILY:
            if not is_valid_date(request.billing_date):
                return []
            start = datetime.strptime(request.billing_date, _DATE_FORMAT).date()
            end = start + timedelta(days=1)
        else:
            raise ValueError(f"unknown granularity: {request.granularity}")

        params: dict[str, Any] = {
            "Granularity": str(request.granularity),
            "Metrics": [BLENDED_COST],
            "TimePeriod": {
                "Start": start.strftime(_DATE_FORMAT),
                "End": end.strftime(_DATE_FORMAT),
            },
        }
        if request.is_group_by_product:
            params["GroupBy"] = [{"Type": "DIMENSION", "Key": "SERVICE"}]
        if charge_type:
            params["Filter"] = {
                "Dimensions": {"Key": "PURCHASE_TYPE", "Values": [charge_type]}
            }

        items: list[AccountBillItem] = []
        while True:
            output = self.cost_explorer.get_cost_and_usage(**params)
            items.extend(self._bill_items(output, request, charge_type))
            token = output.get("NextPageToken")
            if not token:
                break
            params["NextPageToken"] = token
        return items

    @staticmethod
    def _bill_items(
        output: Response, request: QueryAccountBillRequest, charge_type: str
    ) -> list[AccountBillItem]:
        by_time = output["ResultsByTime"][0]
        billing_date = request.billing_date if request.granularity == Granularity.DAILY else ""
        subscription_type = convert_charge_type(charge_type)
        if request.is_group_by_product:
            items = []
            for group in by_time.get("Groups") or []:
                key = group["Keys"][0]
                cost = group.get("Metrics", {}).get(BLENDED_COST, {})
                items.append(
                    AccountBillItem(
                        pip_code=key,
                        product_name=key,
                        billing_date=billing_date,
                        subscription_type=subscription_type,
                        currency=cost.get("Unit") or "",
                        pretax_amount=convert_amount(cost.get("Amount")),
                    )
                )
            return items
        cost = (by_time.get("Total") or {}).get(BLENDED_COST, {})
        return [
            AccountBillItem(
                billing_date=billing_date,
                subscription_type=subscription_type,
                currency=cost.get("Unit") or "",
                pretax_amount=convert_amount(cost.get("Amount")),
            )
        ]

    def describe_regions(self, request: DescribeRegionsRequest) -> DescribeRegions:
        """All EC2 regions; the region name serves as local name too."""
        response = self.ec2.describe_regions()
        return DescribeRegions(
            regions=[
                ItemRegion(local_name=r.get("RegionName", ""), region_id=r.get("RegionName", ""))
                for r in response.get("Regions") or []
            ]
        )

    def describe_instances(self, request: DescribeInstancesRequest) -> DescribeInstances:
        """Describe instances; types covered by an active reservation count as prepaid."""
        output = self.ec2.describe_instances(InstanceIds=list(request.instance_ids))
        reservations = output.get("Reservations") or []
        if not reservations:
            return DescribeInstances()
        reserved = self._active_reserved_instances()
        instances = []
        for reservation in reservations:
            for instance in reservation.get("Instances") or []:
                instance_type = instance.get("InstanceType", "")
                matching = [key for key, value in reserved.items() if value == instance_type]
                for key in matching:
                    del reserved[key]
                instances.append(
                    ItemDescribeInstance(
                        instance_id=instance.get("InstanceId", ""),
                        instance_name=instance_name_from_tags(instance.get("Tags")),
                        subscription_type=(
                            SubscriptionType.PREPAID if matching else SubscriptionType.POSTPAID
                        ),
                        public_ip_addresses=[instance.get("PublicIpAddress") or ""],
                        inner_ip_addresses=[instance.get("PrivateIpAddress") or ""],
                    )
                )
        return DescribeInstances(total_count=len(instances), instances=instances)

    def _active_reserved_instances(self) -> dict[str, str]:
        output = self.ec2.describe_reserved_instances()
        return {
            r.get("ReservedInstancesId", ""): r.get("InstanceType", "")
            for r in output.get("ReservedInstances") or []
            if r.get("State") == RESERVED_STATE_ACTIVE
        }

    def describe_metric_list(self, request: DescribeMetricListRequest) -> DescribeMetricList:
        """Average CPU or memory samples of the requested instances."""
        if not request.instance_ids:
            return DescribeMetricList()
        namespace = metric_name = ""
        if request.metric_name == MetricItem.CPU_UTILIZATION:
            namespace, metric_name = NAMESPACE_CPU, CPU_UTILIZATION
        elif request.metric_name == MetricItem.MEMORY_USED_UTILIZATION:
            namespace, metric_name = NAMESPACE_MEMORY, MEMORY_UTILIZATION
        period = _period_seconds(request.period)

        ids: dict[str, str] = {}
        queries = []
        for index, instance_id in enumerate(request.instance_ids):
            query_id = f"instance{index}"
            ids[query_id] = instance_id
            queries.append(
                {
                    "Id": query_id,
                    "MetricStat": {
                        "Metric": {
                            "Namespace": namespace,
                            "MetricName": metric_name,
                            "Dimensions": [
                                {"Name": INSTANCE_ID_DIMENSION, "Value": instance_id}
                            ],
                        },
                        "Stat": "Average",
                        "Period": period,
                    },
                    "Label": metric_name,
                }
            )
        output = self.cloudwatch.get_metric_data(
            StartTime=request.start_time,
            EndTime=request.end_time,
            MetricDataQueries=queries,
        )
        samples = [
            MetricSample(
                timestamp=_to_millis(stamp),
                instance_id=ids.get(result.get("Id", ""), ""),
                average=float(value),
            )
            for result in output.get("MetricDataResults") or []
            for value, stamp in zip(result.get("Values") or [], result.get("Timestamps") or [])
        ]
        return DescribeMetricList(samples=samples)

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