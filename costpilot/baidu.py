"""Baidu Cloud client.

Only the region endpoint is resolved here; billing, monitoring and
inventory queries are not offered for this provider and return empty
results.
"""

from __future__ import annotations

from typing import Any

from costpilot.cloud import Provider
from costpilot.types import (
    DataInQueryAccountBill,
    DescribeInstanceBill,
    DescribeInstanceBillRequest,
    DescribeInstances,
    DescribeInstancesRequest,
    DescribeMetricList,
    DescribeMetricListRequest,
    DescribeRegions,
    DescribeRegionsRequest,
    QueryAccountBillRequest,
    QueryAvailableInstances,
    QueryAvailableInstancesRequest,
)

ENDPOINTS = {
    "bj": ".bj.baidubce.com",
    "gz": ".gz.baidubce.com",
    "su": ".su.baidubce.com",
    "hkg": ".hkg.baidubce.com",
    "fwh": ".fwh.baidubce.com",
    "bd": ".bd.baidubce.com",
}


def endpoint_for(region_id: str) -> str:
    """Service endpoint suffix of a region, case-insensitive."""
    try:
        return ENDPOINTS[region_id.lower()]
    except KeyError:
        raise ValueError("regionId error:" + region_id) from None


class BaiduCloud:
    """Queries against Baidu Cloud."""

    def __init__(self, region_id: str, bcc_client: Any = None) -> None:
        self.endpoint = endpoint_for(region_id)
        self.region_id = region_id
        self.bcc_client = bcc_client

    def provider_type(self) -> Provider:
        return Provider.BAIDU

    def query_account_bill(self, request: QueryAccountBillRequest) -> DataInQueryAccountBill:
        """Account bills are not offered for this provider; always empty."""
        return DataInQueryAccountBill()

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