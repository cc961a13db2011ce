"""The common interface of cloud clients and a cache of created clients."""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Protocol

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


class CloudProvider(Protocol):
    """What every cloud client offers."""

    def provider_type(self) -> Provider: ...

    def query_account_bill(self, request: QueryAccountBillRequest) -> DataInQueryAccountBill: ...

    def describe_instance_bill(
        self, request: DescribeInstanceBillRequest, is_all: bool
    ) -> DescribeInstanceBill: ...

    def query_available_instances(
        self, request: QueryAvailableInstancesRequest
    ) -> QueryAvailableInstances: ...

    def describe_regions(self, request: DescribeRegionsRequest) -> DescribeRegions: ...

    def describe_instances(self, request: DescribeInstancesRequest) -> DescribeInstances: ...

    def describe_metric_list(self, request: DescribeMetricListRequest) -> DescribeMetricList: ...


ProviderFactory = Callable[[str, str, str], CloudProvider]


class ProviderRegistry:
    """Creates cloud clients by provider and reuses them per account and region."""

    def __init__(self) -> None:
        self._factories: dict[Provider, ProviderFactory] = {}
        self._clients: dict[str, CloudProvider] = {}
        self._lock = threading.Lock()

    def register(self, provider: Provider | str, factory: ProviderFactory) -> None:
        """Use ``factory(ak, sk, region_id)`` to create clients of ``provider``."""
        self._factories[Provider(provider)] = factory

    def get(self, provider: Provider | str, ak: str, sk: str, region_id: str) -> CloudProvider:
        """Cached client for the account and region, created on first use."""
        key = f"{provider}{ak}{region_id}"
        with self._lock:
            client = self._clients.get(key)
            if client is not None:
                return client
            try:
                factory = self._factories[Provider(provider)]
            except (ValueError, KeyError):
                raise ValueError(f"invalid provider[{provider}]") from None
            client = factory(ak, sk, region_id)
            self._clients[key] = client
            return client