"""Cloud providers and subscription (billing) types."""

from __future__ import annotations

from enum import Enum

UNDEFINED = "undefined"


class Provider(str, Enum):
    """A supported cloud provider."""

    ALIBABA = "AlibabaCloud"
    HUAWEI = "HuaweiCloud"
    TENCENT = "TencentCloud"
    BAIDU = "BaiduCloud"
    AWS = "AWSCloud"

    def __str__(self) -> str:
        return self.value

    def label_cn(self) -> str:
        """Chinese display name of the provider."""
        return _PROVIDER_LABELS_CN[self]


_PROVIDER_LABELS_CN = {
    Provider.ALIBABA: "阿里云",
    Provider.HUAWEI: "华为",
    Provider.TENCENT: "腾讯",
    Provider.BAIDU: "百度",
    Provider.AWS: "AWS",
}


class SubscriptionType(str, Enum):
    """How a resource is paid for."""

    PREPAID = "PrePaid"
    POSTPAID = "PostPaid"
    UNDEFINED = UNDEFINED

    def __str__(self) -> str:
        return self.value

    def label_cn(self) -> str:
        """Chinese display name of the subscription type."""
        return _SUBSCRIPTION_LABELS_CN.get(self, UNDEFINED)


_SUBSCRIPTION_LABELS_CN = {
    SubscriptionType.PREPAID: "包年包月",
    SubscriptionType.POSTPAID: "按量付费",
}


def provider_name(value: str | Provider | None) -> str:
    """Return the canonical provider name, or ``"undefined"`` if unknown."""
    try:
        return Provider(value).value
    except ValueError:
        return UNDEFINED


def subscription_type_name(value: str | SubscriptionType | None) -> str:
    """Return the canonical subscription type name, or ``"undefined"`` if unknown."""
    try:
        return SubscriptionType(value).value
    except ValueError:
        return UNDEFINED