import json
from datetime import datetime

import pytest

from costpilot.alibaba import (
    MAX_PAGE_SIZE,
    AlibabaApiError,
    AlibabaCloud,
    convert_subscription_type,
    to_aliyun_subscription_type,
)
from costpilot.cloud import Provider, SubscriptionType
from costpilot.types import (
    DescribeInstanceBillRequest,
    DescribeInstancesRequest,
    DescribeMetricListRequest,
    DescribeRegionsRequest,
    Granularity,
    MetricItem,
    QueryAccountBillRequest,
    QueryAvailableInstancesRequest,
    RegionLanguage,
    ResourceType,
)


class FakeService:
    """Replays queued responses per method and records the parameters."""

    def __init__(self, **responses):
        self.responses = {name: list(items) for name, items in responses.items()}
        self.calls = {name: [] for name in responses}

    def _answer(self, name, params):
        self.calls[name].append(params)
        return self.responses[name].pop(0)

    def query_account_bill(self, params):
        return self._answer("query_account_bill", params)

    def describe_instance_bill(self, params):
        return self._answer("describe_instance_bill", params)

    def query_available_instances(self, params):
        return self._answer("query_available_instances", params)

    def describe_metric_list(self, params):
        return self._answer("describe_metric_list", params)

    def describe_regions(self, params):
        return self._answer("describe_regions", params)


def make_cloud(bss=None, cms=None, ecs=None):
    return AlibabaCloud(bss or FakeService(), cms or FakeService(), ecs or FakeService())


def ok(body):
    return {"statusCode": 200, "body": body}


def bill_page(items, total):
    return {
        "Data": {
            "BillingCycle": "2022-09",
            "AccountID": "acct-1",
            "AccountName": "demo",
            "TotalCount": total,
            "Items": {"Item": items},
        }
    }


def test_subscription_type_conversion():
    assert convert_subscription_type("Subscription") is SubscriptionType.PREPAID
    assert convert_subscription_type("PayAsYouGo") is SubscriptionType.POSTPAID
    assert convert_subscription_type("other") is SubscriptionType.UNDEFINED
    for st in (SubscriptionType.PREPAID, SubscriptionType.POSTPAID):
        assert convert_subscription_type(to_aliyun_subscription_type(st)) is st
    assert to_aliyun_subscription_type(None) == ""


def test_provider_type():
    assert make_cloud().provider_type() is Provider.ALIBABA


def test_query_account_bill_paginates():
    item_a = {"PipCode": "ecs", "ProductName": "ECS", "SubscriptionType": "Subscription",
              "Currency": "CNY", "PretaxAmount": 1.5}
    item_b = {"PipCode": "oss", "ProductName": "OSS", "SubscriptionType": "PayAsYouGo",
              "Currency": "CNY", "PretaxAmount": 2.25}
    bss = FakeService(query_account_bill=[bill_page([item_a], 2), bill_page([item_b], 2)])
    cloud = make_cloud(bss=bss)
    result = cloud.query_account_bill(QueryAccountBillRequest(
        billing_cycle="2022-09", is_group_by_product=True, granularity=Granularity.MONTHLY))
    assert result.total_count == 2
    assert result.account_id == "acct-1"
    assert [i.pip_code for i in result.items] == ["ecs", "oss"]
    assert result.items[0].subscription_type is SubscriptionType.PREPAID
    assert result.items[1].pretax_amount == 2.25
    assert [c["PageNum"] for c in bss.calls["query_account_bill"]] == [1, 2]
    assert bss.calls["query_account_bill"][0]["PageSize"] == MAX_PAGE_SIZE
    assert bss.calls["query_account_bill"][0]["Granularity"] == "MONTHLY"


def test_describe_metric_list_follows_tokens():
    first = [{"instanceId": "i-1", "timestamp": 1000, "Minimum": 1.0, "Maximum": 3.0, "Average": 2.0}]
    second = [{"instanceId": "i-2", "timestamp": 2000, "Minimum": 4.0, "Maximum": 6.0, "Average": 5.0}]
    cms = FakeService(describe_metric_list=[
        ok({"Datapoints": json.dumps(first), "NextToken": "tok"}),
        ok({"Datapoints": json.dumps(second), "NextToken": None}),
    ])
    cloud = make_cloud(cms=cms)
    result = cloud.describe_metric_list(DescribeMetricListRequest(
        metric_name=MetricItem.MEMORY_USED_UTILIZATION, period="86400",
        start_time=datetime(2022, 11, 10), end_time=datetime(2022, 11, 11)))
    assert [s.instance_id for s in result.samples] == ["i-1", "i-2"]
    assert result.samples[1].average == 5.0
    calls = cms.calls["describe_metric_list"]
    assert calls[0]["MetricName"] == "memory_usedutilization"
    assert calls[0]["StartTime"] == "2022-11-10T00:00:00Z"
    assert calls[1]["NextToken"] == "tok"


def test_describe_metric_list_errors_and_empty():
    cloud = make_cloud(cms=FakeService(describe_metric_list=[{"statusCode": 500, "body": None}]))
    request = DescribeMetricListRequest(
        metric_name=MetricItem.CPU_UTILIZATION, period="60",
        start_time=datetime(2022, 1, 1), end_time=datetime(2022, 1, 2))
    with pytest.raises(AlibabaApiError, match="httpcode 500"):
        cloud.describe_metric_list(request)
    empty = make_cloud(cms=FakeService(describe_metric_list=[ok({"Datapoints": None})]))
    assert empty.describe_metric_list(request).samples == []


def test_describe_regions():
    ecs = FakeService(describe_regions=[ok({"Regions": {"Region": [
        {"LocalName": "华东1", "RegionId": "cn-hangzhou"}]}})])
    cloud = make_cloud(ecs=ecs)
    result = cloud.describe_regions(DescribeRegionsRequest(
        resource_type=ResourceType.INSTANCE, language=RegionLanguage.ZH_CN))
    assert [r.region_id for r in result.regions] == ["cn-hangzhou"]
    assert ecs.calls["describe_regions"][0] == {"ResourceType": "Instance", "AcceptLanguage": "zh-CN"}


def test_describe_regions_rejects_unknown():
    cloud = make_cloud()
    with pytest.raises(ValueError, match="unknown resource type"):
        cloud.describe_regions(DescribeRegionsRequest(language=RegionLanguage.ZH_CN))
    with pytest.raises(ValueError, match="unknown region language"):
        cloud.describe_regions(DescribeRegionsRequest(resource_type=ResourceType.DISK))


def _instance_bill_body(instance_id, total, token):
    return ok({"Data": {
        "BillingCycle": "2022-11", "AccountID": "acct-1", "AccountName": "demo",
        "TotalCount": total, "NextToken": token,
        "Items": [{"InstanceID": instance_id, "SubscriptionType": "PayAsYouGo"}],
    }})


def test_describe_instance_bill_all_and_first_page():
    bss = FakeService(describe_instance_bill=[
        _instance_bill_body("i-a", 2, "next"), _instance_bill_body("i-b", 2, None)])
    cloud = make_cloud(bss=bss)
    request = DescribeInstanceBillRequest(
        billing_cycle="2022-11", granularity=Granularity.MONTHLY, instance_id="i-a")
    result = cloud.describe_instance_bill(request, True)
    assert [i.instance_id for i in result.items] == ["i-a", "i-b"]
    assert result.total_count == 2
    assert result.items[0].subscription_type is SubscriptionType.POSTPAID
    assert bss.calls["describe_instance_bill"][1]["NextToken"] == "next"

    single = FakeService(describe_instance_bill=[_instance_bill_body("i-a", 2, "next")])
    partial = make_cloud(bss=single).describe_instance_bill(request, False)
    assert partial.total_count == 1
    assert len(single.calls["describe_instance_bill"]) == 1


def test_describe_instance_bill_requires_cycle():
    with pytest.raises(ValueError, match="BillingCycle empty"):
        make_cloud().describe_instance_bill(DescribeInstanceBillRequest(), True)


def _available_body(ids, total):
    return ok({"Success": True, "Data": {"TotalCount": total, "InstanceList": [
        {"InstanceID": i, "Region": "cn-shenzhen", "SubscriptionType": "Subscription"} for i in ids]}})


def test_query_available_instances_splits_large_id_lists():
    ids = [f"i-{n}" for n in range(150)]
    bss = FakeService(query_available_instances=[
        _available_body(ids[:100], 100), _available_body(ids[100:], 50)])
    cloud = make_cloud(bss=bss)
    result = cloud.query_available_instances(QueryAvailableInstancesRequest(
        instance_ids=ids, subscription_type=SubscriptionType.PREPAID))
    assert result.total_count == len(ids)
    assert [i.instance_id for i in result.instances] == ids
    calls = bss.calls["query_available_instances"]
    assert calls[0]["InstanceIDs"] == ",".join(ids[:100])
    assert calls[1]["InstanceIDs"] == ",".join(ids[100:])
    assert calls[0]["SubscriptionType"] == "Subscription"


def test_query_available_instances_failures():
    cloud = make_cloud()
    with pytest.raises(ValueError, match="productCode"):
        cloud.query_available_instances(QueryAvailableInstancesRequest(region_id="cn-shenzhen"))
    failing = make_cloud(bss=FakeService(query_available_instances=[
        ok({"Success": False, "Message": "denied"})]))
    with pytest.raises(AlibabaApiError, match="denied"):
        failing.query_available_instances(QueryAvailableInstancesRequest(instance_ids=["i-1"]))


def test_describe_instances_is_empty():
    result = make_cloud().describe_instances(DescribeInstancesRequest(instance_ids=["i-1"]))
    assert result.total_count == 0
    assert result.instances == []