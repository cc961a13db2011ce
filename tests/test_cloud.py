import pytest

from costpilot.cloud import (
    UNDEFINED,
    Provider,
    SubscriptionType,
    provider_name,
    subscription_type_name,
)


@pytest.mark.parametrize("provider", list(Provider))
def test_provider_name_round_trip(provider):
    assert Provider(provider_name(provider)) is provider
    assert provider_name(provider.value) == str(provider)


@pytest.mark.parametrize("value", ["", "nope", None, "alibabacloud"])
def test_provider_name_unknown(value):
    assert provider_name(value) == "undefined"


def test_provider_str_is_value():
    assert provider_name(Provider.AWS) == "AWSCloud"
    assert provider_name(f"{Provider.HUAWEI}") == "HuaweiCloud"


def test_provider_label_cn():
    assert Provider.ALIBABA.label_cn() == "阿里云"
    assert Provider.AWS.label_cn() == "AWS"
    labels = [p.label_cn() for p in Provider]
    assert len(set(labels)) == len(labels)
    assert UNDEFINED not in labels


def test_subscription_type_name():
    assert subscription_type_name("PrePaid") == "PrePaid"
    assert subscription_type_name(SubscriptionType.POSTPAID) == "PostPaid"
    assert subscription_type_name("Subscription") == UNDEFINED
    assert subscription_type_name(None) == UNDEFINED


def test_subscription_label_cn():
    assert SubscriptionType.PREPAID.label_cn() == "包年包月"
    assert SubscriptionType.POSTPAID.label_cn() == "按量付费"
    assert SubscriptionType.UNDEFINED.label_cn() == UNDEFINED


def test_subscription_type_undefined_value():
    assert SubscriptionType("undefined") is SubscriptionType.UNDEFINED