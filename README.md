# costpilot

Queries billing, instance, region and metric data from several cloud
providers and returns it in one common shape.

Each provider is a class that wraps service clients you create and pass in.
Every class offers the same operations:

- `query_account_bill(request)`: account cost of a month or a day, as one
  total or grouped by product and subscription type
- `describe_instance_bill(request, is_all)`: bills per instance
- `query_available_instances(request)`: available instances
- `describe_regions(request)`: regions and their local names
- `describe_instances(request)`: instance details
- `describe_metric_list(request)`: CPU and memory samples
- `provider_type()`: the `Provider` the class stands for

How much each provider answers:

| Class | Module | Implemented operations |
| --- | --- | --- |
| `AlibabaCloud(bss_client, cms_client, ecs_client)` | `costpilot.alibaba` | all except `describe_instances` |
| `AWSCloud(cost_explorer, ec2, cloudwatch)` | `costpilot.aws` | account bill, regions, instances, metrics |
| `HuaweiCloud(bss_client, iam_client, ecs_client, ces_client)` | `costpilot.huawei` | account bill, regions, instances, metrics |
| `TencentCloud(billing_client)` | `costpilot.tencent` | account bill |
| `BaiduCloud(region_id, bcc_client=None)` | `costpilot.baidu` | none; only resolves the region endpoint |

Operations a provider does not offer return an empty result object. The
expected methods and response mappings of each service client are described
in the docstring of the module; the AWS clients are shaped like the boto3
clients of the same names.

Requests and results are dataclasses in `costpilot.types`, for example
`QueryAccountBillRequest`, `DataInQueryAccountBill`,
`DescribeMetricListRequest` and `DescribeMetricList`, together with the enums
`Granularity`, `MetricItem`, `ResourceType`, `RegionLanguage` and `PipCode`
(`pip_code_to_name` gives a product's Chinese name). `Provider` and
`SubscriptionType` in `costpilot.cloud` name providers and billing modes;
`provider_name` and `subscription_type_name` return `"undefined"` for unknown
values. `costpilot.data` holds dataclasses for daily, monthly and yearly
billing and for per-instance CPU and memory utilization, and
`costpilot.paths.js_data_path()` gives the path `website/static/analysis/data-set.js`.

## Installation

```
pip install .
```

## Usage

```python
from costpilot.cloud import Provider
from costpilot.provider import ProviderRegistry
from costpilot.tencent import TencentCloud
from costpilot.types import Granularity, QueryAccountBillRequest


class BillingClient:
    """Stands in for a Tencent billing client built from your credentials."""

    def describe_bill_detail(self, params):
        return {
            "Response": {
                "Total": 1,
                "DetailSet": [
                    {
                        "BusinessCode": "p_cvm",
                        "BusinessCodeName": "CVM",
                        "PayModeName": "包年包月",
                        "ComponentSet": [{"PriceUnit": "元/个/月", "RealCost": "17.46"}],
                    }
                ],
            }
        }


registry = ProviderRegistry()
registry.register(Provider.TENCENT, lambda ak, sk, region: TencentCloud(BillingClient()))

cloud = registry.get(Provider.TENCENT, "access-key-id", "placeholder", "ap-guangzhou")
bill = cloud.query_account_bill(
    QueryAccountBillRequest(
        billing_cycle="2022-01",
        granularity=Granularity.MONTHLY,
        is_group_by_product=True,
    )
)
for item in bill.items:
    print(item.product_name, item.subscription_type, item.pretax_amount, item.currency)
```

`ProviderRegistry.get` creates a client with the registered factory on first
use and caches it by provider, access key and region. A provider without a
registered factory raises `ValueError`.

## Errors

Invalid requests raise `ValueError` (for example an unknown metric name, an
empty billing cycle or date, or an unknown granularity). Failed API answers
raise `costpilot.alibaba.AlibabaApiError` or `costpilot.huawei.HuaweiApiError`.
Errors from the service clients themselves pass through unchanged.

## What it does not do

- It does not build SDK clients or sign requests; you supply the service
  clients.
- It has no command-line program, reads no configuration file or environment
  variables, and stores nothing.
- It does not aggregate bills across accounts or write the analysis data file;
  `costpilot.data` and `costpilot.paths` only give the record shapes and the
  file location.

## Tests

```
pip install ".[test]"
pytest
```