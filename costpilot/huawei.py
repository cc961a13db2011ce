"""Huawei Cloud client: billing, monitoring, region and server queries.

The client works with four service clients that are handed in. Each is
called with a mapping of request parameters named as in the Huawei Cloud
API and returns the JSON response as a mapping:

* ``bss_client`` (billing), with ``show_customer_monthly_sum`` and
  ``list_customerself_resource_records``;
* ``iam_client`` (identity), with ``keystone_list_regions``;
* ``ecs_client`` (compute), with ``list_servers_details``;
* ``ces_client`` (cloud eye monitoring), with ``batch_list_metric_data``.

Responses of the IAM, ECS and CES clients carry their HTTP status under
``status_code``. Transport failures are raised by the service clients and
pass through.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
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
    ItemDescribeInstance,
    ItemRegion,
    MetricItem,
    MetricSample,
    PipCode,
    QueryAccountBillRequest,
    QueryAvailableInstances,
    QueryAvailableInstancesRequest,
    RegionLanguage,
)

BSS_REGION = "cn-north-1"
CHARGING_MODE = "charging_mode"
FLOATING = "floating"
INSTANCE_ID_DIMENSION = "instance_id"
AVERAGE_FILTER = "average"
NAMESPACE_SYS_ECS = "SYS.ECS"
NAMESPACE_AGT_ECS = "AGT.ECS"
PAGE_LIMIT = 10
HTTP_OK = 200
IP_TYPE_KEY = "OS-EXT-IPS:type"

METRIC_NAMES = {
    MetricItem.CPU_UTILIZATION: "cpu_usage",
    MetricItem.MEMORY_USED_UTILIZATION: "mem_usedPercent",
}

_PIP_CODES = {
    "hws.service.type.ec2": PipCode.ECS,  # elastic cloud server
    "hws.service.type.eip": PipCode.EIP,  # elastic public IP
    "hws.service.type.obs": PipCode.S3,  # object storage
    "hws.service.type.natgateway": PipCode.NAT,
    "hws.service.type.sfs": PipCode.NAS,  # scalable file service
    "hws.service.type.elb": PipCode.SLB,  # elastic load balancing
    "hws.service.type.dcs": PipCode.KVSTORE,  # distributed cache
    "hws.service.type.vdi": PipCode.GWS,  # cloud desktop
    "hws.resource.type.pds.en": PipCode.CBN,
}

Response = Mapping[str, Any]


class HuaweiApiError(RuntimeError):
    """The Huawei Cloud API answered with a failure."""


class BssClient(Protocol):
    def show_customer_monthly_sum(self, params: Mapping[str, Any]) -> Response: ...

    def list_customerself_resource_records(self, params: Mapping[str, Any]) -> Response: ...


class IamClient(Protocol):
    def keystone_list_regions(self, params: Mapping[str, Any]) -> Response: ...


class EcsClient(Protocol):
    def list_servers_details(self, params: Mapping[str, Any]) -> Response: ...


class CesClient(Protocol):
    def batch_list_metric_data(self, params: Mapping[str, Any]) -> Response: ...


def convert_pip_code(pip_code: str) -> PipCode | str:
    """Map a Huawei service type code to the standard pip code, else keep it."""
    return _PIP_CODES.get(pip_code, pip_code)


def convert_subscription_type(charge_mode: str | int | None) -> SubscriptionType:
    """Map a Huawei charge mode (``0`` on demand, ``1`` yearly/monthly)."""
    mode = "" if charge_mode is None else str(charge_mode)
    if mode == "0":
        return SubscriptionType.POSTPAID
    if mode == "1":
        return SubscriptionType.PREPAID
    return SubscriptionType.UNDEFINED


def _checked(response: Response) -> Response:
    status = response.get("status_code", HTTP_OK)
    if status != HTTP_OK:
        raise HuaweiApiError(f"httpcode {status}")
    return response


def _to_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def _split_ips(addresses: Mapping[str, Iterable[Mapping[str, Any]]] | None) -> tuple[list[str], list[str]]:
    fixed: list[str] = []
    floating: list[str] = []
    for network in (addresses or {}).values():
        for address in network:
            target = floating if address.get(IP_TYPE_KEY) == FLOATING else fixed
            target.append(address.get("addr", ""))
    return fixed, floating


def _monthly_items(response: Response) -> list[AccountBillItem]:
    currency = response.get("currency") or ""
    return [
        AccountBillItem(
            pip_code=convert_pip_code(raw.get("service_type_code") or ""),
            product_name=raw.get("service_type_name") or "",
            subscription_type=convert_subscription_type(int(raw.get("charging_mode") or 0)),
            currency=currency,
            pretax_amount=float(raw.get("cash_amount") or 0.0),
        )
        for raw in response.get("bill_sums") or []
    ]


def _daily_items(response: Response) -> list[AccountBillItem]:
    currency = response.get("currency") or ""
    return [
        AccountBillItem(
            pip_code=convert_pip_code(raw.get("cloud_service_type") or ""),
            product_name=raw.get("cloud_service_type_name") or "",
            billing_date=raw.get("bill_date") or "",
            subscription_type=convert_subscription_type(raw.get("charge_mode")),
            currency=currency,
            pretax_amount=float(raw.get("amount") or 0.0),
        )
        for raw in response.get("fee_records") or []
    ]


class HuaweiCloud:
    """Cost and resource queries against Huawei Cloud."""

    def __init__(
        self,
        bss_client: BssClient,
        iam_client: IamClient,
        ecs_client: EcsClient,
        ces_client: CesClient,
    ) -> None:
        self.bss_client = bss_client
        self.iam_client = iam_client
        self.ecs_client = ecs_client
        self.ces_client = ces_client

    def provider_type(self) -> Provider:
        return Provider.HUAWEI

    def query_account_bill(self, request: QueryAccountBillRequest) -> DataInQueryAccountBill:
        """Account bill of a day or a month; empty for other granularities."""
        if request.granularity == Granularity.DAILY:
            return self._query_account_bill_by_date(request)
        if request.granularity == Granularity.MONTHLY:
            return self._query_account_bill_by_month(request)
        return DataInQueryAccountBill()

    def _query_account_bill_by_month(self, request: QueryAccountBillRequest) -> DataInQueryAccountBill:
        params: dict[str, Any] = {
            "bill_cycle": request.billing_cycle,
            "offset": 0,
            "limit": PAGE_LIMIT,
        }
        if not request.is_group_by_product:
            response = self.bss_client.show_customer_monthly_sum(dict(params))
            return DataInQueryAccountBill(
                billing_cycle=request.billing_cycle,
                total_count=int(response.get("total_count") or 0),
                items=[
                    AccountBillItem(
                        currency=response.get("currency") or "",
                        pretax_amount=float(response.get("cash_amount") or 0.0),
                    )
                ],
            )
        items: list[AccountBillItem] = []
        while True:
            response = self.bss_client.show_customer_monthly_sum(dict(params))
            page = _monthly_items(response)
            items.extend(page)
            if len(items) >= int(response.get("total_count") or 0) or not page:
                break
            params["offset"] += PAGE_LIMIT
        return DataInQueryAccountBill(
            billing_cycle=request.billing_cycle,
            total_count=int(response.get("total_count") or 0),
            items=items,
        )

    def _query_account_bill_by_date(self, request: QueryAccountBillRequest) -> DataInQueryAccountBill:
        params: dict[str, Any] = {
            "cycle": request.billing_cycle,
            "bill_date_begin": request.billing_date,
            "bill_date_end": request.billing_date,
            "include_zero_record": False,
            "offset": 0,
            "limit": PAGE_LIMIT,
        }
        records: list[AccountBillItem] = []
        while True:
            response = self.bss_client.list_customerself_resource_records(dict(params))
            page = _daily_items(response)
            records.extend(page)
            if len(records) >= int(response.get("total_count") or 0) or not page:
                break
            params["offset"] += PAGE_LIMIT

        if not request.is_group_by_product:
            currency = next((r.currency for r in records if r.currency), "")
            return DataInQueryAccountBill(
                billing_cycle=request.billing_cycle,
                total_count=1,
                items=[
                    AccountBillItem(
                        billing_date=request.billing_date,
                        currency=currency,
                        pretax_amount=sum(r.pretax_amount for r in records),
                    )
                ],
            )

        grouped: dict[str, AccountBillItem] = {}
        for record in records:
            key = record.product_name + str(record.subscription_type)
            if key in grouped:
                grouped[key].pretax_amount += record.pretax_amount
            else:
                grouped[key] = AccountBillItem(
                    pip_code=record.pip_code,
                    product_name=record.product_name,
                    billing_date=record.billing_date,
                    subscription_type=record.subscription_type,
                    currency=record.currency,
                    pretax_amount=record.pretax_amount,
                )
        items = list(grouped.values())
        return DataInQueryAccountBill(
            billing_cycle=request.billing_cycle,
            total_count=len(items),
            items=items,
        )

    def describe_metric_list(self, request: DescribeMetricListRequest) -> DescribeMetricList:
        """Average samples of the requested instances from the monitoring agent."""
        if not request.instance_ids:
            raise ValueError("filter InstanceIds empty")
        try:
            metric_name = METRIC_NAMES[request.metric_name]
        except KeyError:
            raise ValueError(
                f"collect metric {request.metric_name} not supported for huawei"
            ) from None
        body = {
            "metrics": [
                {
                    "namespace": NAMESPACE_AGT_ECS,
                    "dimensions": [{"name": INSTANCE_ID_DIMENSION, "value": instance_id}],
                    "metric_name": metric_name,
                }
                for instance_id in request.instance_ids
            ],
            "period": request.period,
            "filter": AVERAGE_FILTER,
            "from": _to_millis(request.start_time),
            "to": _to_millis(request.end_time),
        }
        response = _checked(self.ces_client.batch_list_metric_data(body))
        samples = []
        for metric in response.get("metrics") or []:
            dimensions = metric.get("dimensions") or []
            instance_id = dimensions[0].get("value", "") if dimensions else ""
            for point in metric.get("datapoints") or []:
                samples.append(
                    MetricSample(
                        timestamp=int(point.get("timestamp", 0)),
                        instance_id=instance_id,
                        average=float(point.get("average", 0.0)),
                    )
                )
        return DescribeMetricList(samples=samples)

    def describe_regions(self, request: DescribeRegionsRequest) -> DescribeRegions:
        """All regions, named in English when asked for, else in Chinese."""
        response = _checked(self.iam_client.keystone_list_regions({}))
        locale = "en-us" if request.language == RegionLanguage.EN_US else "zh-cn"
        return DescribeRegions(
            regions=[
                ItemRegion(
                    local_name=(region.get("locales") or {}).get(locale, ""),
                    region_id=region.get("id", ""),
                )
                for region in response.get("regions") or []
            ]
        )

    def describe_instances(self, request: DescribeInstancesRequest) -> DescribeInstances:
        """Servers of the region, restricted to the requested ids if any."""
        response = _checked(self.ecs_client.list_servers_details({}))
        wanted = set(request.instance_ids)
        instances = []
        for server in response.get("servers") or []:
            server_id = server.get("id", "")
            if wanted and server_id not in wanted:
                continue
            fixed, floating = _split_ips(server.get("addresses"))
            instances.append(
                ItemDescribeInstance(
                    instance_id=server_id,
                    instance_name=server.get("name", ""),
                    subscription_type=convert_subscription_type(
                        (server.get("metadata") or {}).get(CHARGING_MODE, "")
                    ),
                    inner_ip_addresses=fixed,
                    public_ip_addresses=floating,
                )
            )
        return DescribeInstances(total_count=len(instances), instances=instances)

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