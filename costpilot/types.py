"""Provider-neutral request and response records shared by cloud clients."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from costpilot.cloud import SubscriptionType

UNDEFINED_NAME = "Undefined"


class _TextEnum(str, Enum):
    def __str__(self) -> str:
        return self.value


class Granularity(_TextEnum):
    MONTHLY = "MONTHLY"
    DAILY = "DAILY"


class MetricItem(_TextEnum):
    CPU_UTILIZATION = "cpu.utilization"
    MEMORY_USED_UTILIZATION = "memory.used.utilization"


class ResourceType(_TextEnum):
    INSTANCE = "instance"
    DISK = "disk"


class RegionLanguage(_TextEnum):
    EN_US = "en-US"
    ZH_CN = "zh-CN"


class PipCode(_TextEnum):
    """Standard product codes; providers may also report codes outside this set."""

    ECS = "ecs"
    EIP = "eip"
    GWS = "gws"
    KVSTORE = "kvstore"
    DISK = "disk"
    NAS = "nas"
    NAT = "nat"
    S3 = "s3"
    SLB = "slb"
    CBN = "cbn"


_PIP_CODE_NAMES = {
    PipCode.ECS: "云服务器",
    PipCode.EIP: "弹性公网IP",
    PipCode.GWS: "云桌面",
    PipCode.KVSTORE: "云数据库Redis",
    PipCode.DISK: "块存储",
    PipCode.NAS: "文件存储NAS",
    PipCode.NAT: "NAT网关",
    PipCode.S3: "对象存储",
    PipCode.SLB: "负载均衡",
    PipCode.CBN: "云企业网",
}


def pip_code_to_name(pip_code: str | PipCode) -> str:
    """Chinese product name for a pip code, or ``"Undefined"``."""
    try:
        return _PIP_CODE_NAMES[PipCode(pip_code)]
    except ValueError:
        return UNDEFINED_NAME


@dataclass
class QueryAccountBillRequest:
    billing_cycle: str = ""
    billing_date: str = ""
    is_group_by_product: bool = False
    granularity: Granularity | None = None


@dataclass
class AccountBillItem:
    pip_code: str = ""
    product_name: str = ""
    billing_date: str = ""
    subscription_type: SubscriptionType | None = None
    currency: str = ""
    pretax_amount: float = 0.0


@dataclass
class DataInQueryAccountBill:
    billing_cycle: str = ""
    account_id: str = ""
    total_count: int = 0
    account_name: str = ""
    items: list[AccountBillItem] = field(default_factory=list)


@dataclass
class ServiceType:
    service_type_name: str = ""
    service_type_code: str = ""
    abbreviation: str = ""


@dataclass
class DescribeMetricListRequest:
    metric_name: MetricItem
    period: str
    start_time: datetime
    end_time: datetime
    instance_ids: list[str] = field(default_factory=list)


@dataclass
class MetricSample:
    timestamp: int = 0
    instance_id: str = ""
    minimum: float = 0.0
    maximum: float = 0.0
    average: float = 0.0


@dataclass
class DescribeMetricList:
    samples: list[MetricSample] = field(default_factory=list)


@dataclass
class DescribeRegionsRequest:
    resource_type: ResourceType | None = None
    language: RegionLanguage | None = None


@dataclass
class ItemRegion:
    local_name: str = ""
    region_id: str = ""


@dataclass
class DescribeRegions:
    regions: list[ItemRegion] = field(default_factory=list)


@dataclass
class DescribeZonesRequest:
    region_id: str = ""
    available: bool = False


@dataclass
class ItemZone:
    zone_id: str = ""
    zone_name: str = ""


@dataclass
class DescribeZones:
    zones: list[ItemZone] = field(default_factory=list)


@dataclass
class DescribeInstancesRequest:
    zone_ids: list[str] = field(default_factory=list)
    instance_ids: list[str] = field(default_factory=list)


@dataclass
class ItemDescribeInstance:
    instance_id: str = ""
    instance_name: str = ""
    region_id: str = ""
    region_name: str = ""
    host_name: str = ""
    subscription_type: SubscriptionType | None = None
    internet_charge_type: str = ""
    public_ip_addresses: list[str] = field(default_factory=list)
    inner_ip_addresses: list[str] = field(default_factory=list)


@dataclass
class DescribeInstances:
    total_count: int = 0
    instances: list[ItemDescribeInstance] = field(default_factory=list)


@dataclass
class DescribeInstanceBillRequest:
    billing_cycle: str = ""  # YYYY-MM
    granularity: Granularity | None = None
    instance_id: str = ""


@dataclass
class InstanceBillItem:
    billing_date: str = ""
    instance_config: str = ""
    internet_ip: str = ""
    intranet_ip: str = ""
    instance_id: str = ""
    currency: str = ""
    subscription_type: SubscriptionType | None = None
    instance_spec: str = ""
    region: str = ""
    product_name: str = ""
    product_detail: str = ""
    item_name: str = ""


@dataclass
class DescribeInstanceBill:
    billing_cycle: str = ""
    account_id: str = ""
    total_count: int = 0
    account_name: str = ""
    items: list[InstanceBillItem] = field(default_factory=list)


@dataclass
class QueryAvailableInstancesRequest:
    region_id: str = ""
    product_code: str = ""
    subscription_type: SubscriptionType | None = None
    instance_ids: list[str] = field(default_factory=list)


@dataclass
class AvailableInstance:
    instance_id: str = ""
    region_id: str = ""
    status: str = ""
    renew_status: str = ""
    subscription_type: SubscriptionType | None = None
    product_code: str = ""


@dataclass
class QueryAvailableInstances:
    total_count: int = 0
    instances: list[AvailableInstance] = field(default_factory=list)