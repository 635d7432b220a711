"""
S3 Bucket creation for the CDK stack.

Creates:
- Data lake bucket holding the per-organization HR source data behind the
  QuickSight datasets
"""

from typing import Callable

from aws_cdk import Duration, RemovalPolicy
from aws_cdk import aws_s3 as s3
from constructs import Construct


def create_s3_buckets(stack: Construct, rn: Callable[[str], str]) -> dict[str, s3.Bucket]:
    """Create S3 buckets for the application.

    Args:
        stack: CDK Construct (usually the Stack instance)
        rn: helper function to create resource names (rn(name: str) -> str)

    Returns:
        Dict with 'data_lake_bucket'
    """
    data_lake_bucket = s3.Bucket(
        stack,
        "DataLake",
        bucket_name=rn("hr-data-lake"),
        versioned=True,
        encryption=s3.BucketEncryption.S3_MANAGED,
        block_public_access=s3.BlockPublicAccess.BLOCK_ALL,
        enforce_ssl=True,
        removal_policy=RemovalPolicy.RETAIN,
        lifecycle_rules=[
            s3.LifecycleRule(
                id="IntelligentTiering",
                transitions=[
                    s3.Transition(
                        storage_class=s3.StorageClass.INTELLIGENT_TIERING,
                        transition_after=Duration.days(0),
                    )
                ],
                noncurrent_version_expiration=Duration.days(90),
            )
        ],
    )

    return {"data_lake_bucket": data_lake_bucket}
