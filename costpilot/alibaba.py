"""Alibaba Cloud client: billing, monitoring and region queries.

The client talks to three service clients that are handed in:

* ``bss_client`` (business/billing API) with ``query_account_bill``,
  ``describe_instance_bill`` and ``query_available_instances``;
* ``cms_client`` (cloud monitor) with ``describe_metric_list``;
* ``ecs_client`` (compute) with ``describe_regions``.

Each method takes a mapping of request parameters named as in the
Alibaba Cloud API. ``bss_client.query_account_bill`` returns the JSON
body of the response (holding ``Data``) and raises on transport
failures. Every other method returns a mapping with ``statusCode`` and
``body`` keys.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator, Mapping, Sequence
from typing import Any, Protocol

from costpilot.cloud import Provider, SubscriptionType
from costpilot.types import (
    AccountBillItem,
    AvailableInstance,
    DataInQueryAccountBill,
    DescribeInstanceBill,
    DescribeInstanceBillRequest,
    DescribeInstances,
    DescribeInstancesRequest,
    DescribeMetricList,
    DescribeMetricListRequest,
    DescribeRegions,
    DescribeRegionsRequest,
    InstanceBillItem,
    ItemRegion,
    MetricItem,
    MetricSample,
    QueryAccountBillRequest,
    QueryAvailableInstances,
    QueryAvailableInstancesRequest,
    RegionLanguage,
    ResourceType,
)

log = logging.getLogger(__name__)

BSS_ENDPOINT = "business.aliyuncs.com"
CMS_ENDPOINT = "metrics.cn-hangzhou.aliyuncs.com"
ECS_ENDPOINT = "ecs.cn-shenzhen.aliyuncs.com"

MAX_PAGE_SIZE = 300
MAX_INSTANCE_IDS = 100
METRIC_NAMESPACE = "acs_ecs_dashboard"
METRIC_PAGE_LENGTH = "100"
HTTP_OK = 200
_TIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

METRIC_NAMES = {
    MetricItem.CPU_UTILIZATION: "CPUUtilization",
    MetricItem.MEMORY_USED_UTILIZATION: "memory_usedutilization",
}

RESOURCE_TYPES = {
    ResourceType.INSTANCE: "Instance",
    ResourceType.DISK: "disk",
}

REGION_LANGUAGES = {
    RegionLanguage.ZH_CN: "zh-CN",
    RegionLanguage.EN_US: "en-US",
}

Response = Mapping[str, Any]


class AlibabaApiError(RuntimeError):
    """The Alibaba Cloud API answered with a failure."""


class BssClient(Protocol):
    def query_account_bill(self, params: Mapping[str, Any]) -> Response: ...

    def describe_instance_bill(self, params: Mapping[str, Any]) -> Response: ...

    def query_available_instances(self, params: Mapping[str, Any]) -> Response: ...


class CmsClient(Protocol):
    def describe_metric_list(self, params: Mapping[str, Any]) -> Response: ...


class EcsClient(Protocol):
    def describe_regions(self, params: Mapping[str, Any]) -> Response: ...


def convert_subscription_type(value: str) -> SubscriptionType:
    """Map an Alibaba subscription type to the common one."""
    if value == "Subscription":
        return SubscriptionType.PREPAID
    if value == "PayAsYouGo":
        return SubscriptionType.POSTPAID
    return SubscriptionType.UNDEFINED


def to_aliyun_subscription_type(subscription_type: SubscriptionType | str | None) -> str:
    """Map a common subscription type to Alibaba's name, or ``""``."""
    if subscription_type == SubscriptionType.PREPAID:
        return "Subscription"
    if subscription_type == SubscriptionType.POSTPAID:
        return "PayAsYouGo"
    return ""


def _checked_body(response: Response) -> Mapping[str, Any] | None:
    status = response.get("statusCode")
    if status != HTTP_OK:
        raise AlibabaApiError(f"httpcode {status}")
    return response.get("body")


def _chunks(items: Sequence[str], size: int) -> Iterator[Sequence[str]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


def _account_bill_item(raw: Mapping[str, Any]) -> AccountBillItem:
    return AccountBillItem(
        pip_code=raw.get("PipCode", ""),
        product_name=raw.get("ProductName", ""),
        billing_date=raw.get("BillingDate", ""),  # set only for daily granularity
        subscription_type=convert_subscription_type(raw.get("SubscriptionType", "")),
        currency=raw.get("Currency", ""),
        pretax_amount=float(raw.get("PretaxAmount", 0.0)),
    )


def _instance_bill_item(raw: Mapping[str, Any]) -> InstanceBillItem:
    return InstanceBillItem(
        billing_date=raw.get("BillingDate", ""),
        instance_config=raw.get("InstanceConfig", ""),
        internet_ip=raw.get("InternetIP", ""),
        intranet_ip=raw.get("IntranetIP", ""),
        instance_id=raw.get("InstanceID", ""),
        currency=raw.get("Currency", ""),
        subscription_type=convert_subscription_type(raw.get("SubscriptionType", "")),
        instance_spec=raw.get("InstanceSpec", ""),
        region=raw.get("Region", ""),
        product_name=raw.get("ProductName", ""),
        product_detail=raw.get("ProductDetail", ""),
        item_name=raw.get("ItemName", ""),
    )


def _available_instance(raw: Mapping[str, Any]) -> AvailableInstance:
    return AvailableInstance(
        instance_id=raw.get("InstanceID", ""),
        region_id=raw.get("Region", ""),
        status=raw.get("Status", ""),
        renew_status=raw.get("RenewStatus", ""),
        subscription_type=convert_subscription_type(raw.get("SubscriptionType", "")),
        product_code=raw.get("ProductCode", ""),
    )


def _metric_sample(raw: Mapping[str, Any]) -> MetricSample:
    return MetricSample(
        timestamp=int(raw.get("timestamp", 0)),
        instance_id=raw.get("instanceId", ""),
        minimum=float(raw.get("Minimum", 0.0)),
        maximum=float(raw.get("Maximum", 0.0)),
        average=float(raw.get("Average", 0.0)),
    )


class AlibabaCloud:
    """Cost and resource queries against Alibaba Cloud."""

    def __init__(self, bss_client: BssClient, cms_client: CmsClient, ecs_client: EcsClient) -> None:
        self.bss_client = bss_client
        self.cms_client = cms_client
        self.ecs_client = ecs_client

    def provider_type(self) -> Provider:
        return Provider.ALIBABA

    def query_account_bill(self, request: QueryAccountBillRequest) -> DataInQueryAccountBill:
        """Fetch every page of the account bill."""
        page_num = 1
        params: dict[str, Any] = {
            "BillingCycle": request.billing_cycle,
            "BillingDate": request.billing_date,
            "IsGroupByProduct": request.is_group_by_product,
            "Granularity": str(request.granularity) if request.granularity else "",
            "PageNum": page_num,
            "PageSize": MAX_PAGE_SIZE,
        }
        items: list[AccountBillItem] = []
        while True:
            data = self.bss_client.query_account_bill(dict(params))["Data"]
            page = [_account_bill_item(raw) for raw in data.get("Items", {}).get("Item", [])]
            items.extend(page)
            if len(items) >= data.get("TotalCount", 0) or not page:
                break
            page_num += 1
            params["PageNum"] = page_num
        return DataInQueryAccountBill(
            billing_cycle=data.get("BillingCycle", ""),
            account_id=data.get("AccountID", ""),
            total_count=len(items),
            account_name=data.get("AccountName", ""),
            items=items,
        )

    def describe_metric_list(self, request: DescribeMetricListRequest) -> DescribeMetricList:
        """Fetch monitoring samples of all instances, following page tokens."""
        try:
            metric_name = METRIC_NAMES[request.metric_name]
        except KeyError:
            raise ValueError("unknown metric name") from None
        params: dict[str, Any] = {
            "Namespace": METRIC_NAMESPACE,
            "MetricName": metric_name,
            "Period": request.period,
            "StartTime": request.start_time.strftime(_TIME_FORMAT),
            "EndTime": request.end_time.strftime(_TIME_FORMAT),
            "Length": METRIC_PAGE_LENGTH,
        }
        datapoints: list[Mapping[str, Any]] = []
        page = 0
        while True:
            log.info("fetch metrics for page[%d]", page)
            body = _checked_body(self.cms_client.describe_metric_list(dict(params)))
            if body is None or body.get("Datapoints") is None:
                return DescribeMetricList()
            try:
                page_points = json.loads(body["Datapoints"])
            except (TypeError, ValueError):
                return DescribeMetricList()
            if page_points:
                datapoints.extend(page_points)
            next_token = body.get("NextToken")
            if next_token is None:
                break
            params["NextToken"] = next_token
            page += 1
        return DescribeMetricList(samples=[_metric_sample(point) for point in datapoints])

    def describe_regions(self, request: DescribeRegionsRequest) -> DescribeRegions:
        """List regions offering the requested resource type."""
        try:
            resource_type = RESOURCE_TYPES[request.resource_type]
        except KeyError:
            raise ValueError("unknown resource type") from None
        try:
            language = REGION_LANGUAGES[request.language]
        except KeyError:
            raise ValueError("unknown region language") from None
        body = _checked_body(
            self.ecs_client.describe_regions(
                {"ResourceType": resource_type, "AcceptLanguage": language}
            )
        )
        regions = ((body or {}).get("Regions") or {}).get("Region") or []
        return DescribeRegions(
            regions=[
                ItemRegion(local_name=r.get("LocalName", ""), region_id=r.get("RegionId", ""))
                for r in regions
            ]
        )

    def describe_instance_bill(
        self, request: DescribeInstanceBillRequest, is_all: bool
    ) -> DescribeInstanceBill:
        """Fetch the instance bill; only the first page unless ``is_all``.

        Instance bills are split from the account bill and usually lag a day.
        """
        if not request.billing_cycle:
            raise ValueError("BillingCycle empty")
        params: dict[str, Any] = {
            "BillingCycle": request.billing_cycle,
            "MaxResults": MAX_PAGE_SIZE,
        }
        if request.instance_id:
            params["InstanceID"] = request.instance_id
        if request.granularity:
            params["Granularity"] = str(request.granularity)
        items: list[InstanceBillItem] = []
        while True:
            body = _checked_body(self.bss_client.describe_instance_bill(dict(params))) or {}
            data = body.get("Data") or {}
            page = [_instance_bill_item(raw) for raw in data.get("Items") or []]
            items.extend(page)
            if not is_all or len(items) >= data.get("TotalCount", 0) or not page:
                break
            params["NextToken"] = data.get("NextToken")
        return DescribeInstanceBill(
            billing_cycle=data.get("BillingCycle", ""),
            account_id=data.get("AccountID", ""),
            total_count=len(items),
            account_name=data.get("AccountName", ""),
            items=items,
        )

    def query_available_instances(
        self, request: QueryAvailableInstancesRequest
    ) -> QueryAvailableInstances:
        """List available instances, querying at most 100 instance ids at a time."""
        if len(request.instance_ids) <= MAX_INSTANCE_IDS:
            return self._query_available_instances_by_page(request)
        total = len(request.instance_ids)
        instances: list[AvailableInstance] = []
        for index, chunk in enumerate(_chunks(request.instance_ids, MAX_INSTANCE_IDS)):
            log.info("get instance list page[%d], for total[%d]", index, total)
            result = self._query_available_instances_by_page(
                QueryAvailableInstancesRequest(
                    region_id=request.region_id,
                    product_code=request.product_code,
                    subscription_type=request.subscription_type,
                    instance_ids=list(chunk),
                )
            )
            instances.extend(result.instances)
        return QueryAvailableInstances(total_count=len(instances), instances=instances)

    def _query_available_instances_by_page(
        self, request: QueryAvailableInstancesRequest
    ) -> QueryAvailableInstances:
        params: dict[str, Any] = {}
        if request.region_id:
            if not request.product_code:
                raise ValueError(
                    "The parameter productCode cannot be blank when the region is not blank"
                )
            params["Region"] = request.region_id
        if len(request.instance_ids) > MAX_INSTANCE_IDS:
            raise ValueError(
                "InstanceIDs in QueryAvailableInstancesRequest are max to "
                f"{MAX_INSTANCE_IDS}, current: {len(request.instance_ids)}"
            )
        if request.instance_ids:
            params["InstanceIDs"] = ",".join(request.instance_ids)
        if request.subscription_type:
            params["SubscriptionType"] = to_aliyun_subscription_type(request.subscription_type)
        page_num = 1
        params["PageNum"] = page_num
        params["PageSize"] = MAX_PAGE_SIZE

        instances: list[AvailableInstance] = []
        while True:
            body = _checked_body(self.bss_client.query_available_instances(dict(params))) or {}
            if not body.get("Success"):
                raise AlibabaApiError(f"QueryAvailableInstances err: {body.get('Message')}")
            data = body.get("Data") or {}
            page = [_available_instance(raw) for raw in data.get("InstanceList") or []]
            instances.extend(page)
            if len(instances) >= data.get("TotalCount", 0) or not page:
                break
            page_num += 1
            params["PageNum"] = page_num
        return QueryAvailableInstances(total_count=len(instances), instances=instances)

    def describe_instances(self, request: DescribeInstancesRequest) -> DescribeInstances:
        """Instance description is not offered for this provider; always empty."""
        return DescribeInstances()