from typing import Callable, Dict

from aws_cdk import RemovalPolicy
from aws_cdk import aws_dynamodb as ddb
from constructs import Construct


def create_dynamodb_tables(stack: Construct, rn: Callable[[str], str]) -> Dict[str, ddb.Table]:
    """Create all DynamoDB tables used by the application and return them in a dict.

    Args:
        stack: CDK Construct (usually the Stack instance)
        rn: helper function to create resource names (rn(name: str) -> str)

    Returns:
        Mapping of table names to Table constructs
    """

    # Organizations: one item per tenant, keyed by subdomain
    organizations_table = ddb.Table(
        stack,
        "OrganizationsTable",
        table_name=rn("hr-organizations"),
        partition_key=ddb.Attribute(name="organizationId", type=ddb.AttributeType.STRING),
        billing_mode=ddb.BillingMode.PAY_PER_REQUEST,
        point_in_time_recovery_specification=ddb.PointInTimeRecoverySpecification(point_in_time_recovery_enabled=True),
        stream=ddb.StreamViewType.NEW_AND_OLD_IMAGES,
        removal_policy=RemovalPolicy.RETAIN,
        deletion_protection=True,
    )
    organizations_table.add_global_secondary_index(
        index_name="StatusIndex",
        partition_key=ddb.Attribute(name="status", type=ddb.AttributeType.STRING),
        sort_key=ddb.Attribute(name="createdAt", type=ddb.AttributeType.STRING),
        projection_type=ddb.ProjectionType.ALL,
    )
    organizations_table.add_global_secondary_index(
        index_name="DomainIndex",
        partition_key=ddb.Attribute(name="domain", type=ddb.AttributeType.STRING),
        projection_type=ddb.ProjectionType.ALL,
    )

    users_table = ddb.Table(
        stack,
        "UsersTable",
        table_name=rn("hr-users"),
        partition_key=ddb.Attribute(name="organizationId", type=ddb.AttributeType.STRING),
        sort_key=ddb.Attribute(name="userId", type=ddb.AttributeType.STRING),
        billing_mode=ddb.BillingMode.PAY_PER_REQUEST,
        point_in_time_recovery_specification=ddb.PointInTimeRecoverySpecification(point_in_time_recovery_enabled=True),
        removal_policy=RemovalPolicy.RETAIN,
        deletion_protection=True,
    )
    users_table.add_global_secondary_index(
        index_name="EmailIndex",
        partition_key=ddb.Attribute(name="email", type=ddb.AttributeType.STRING),
        projection_type=ddb.ProjectionType.ALL,
    )
    users_table.add_global_secondary_index(
        index_name="UserIdIndex",
        partition_key=ddb.Attribute(name="userId", type=ddb.AttributeType.STRING),
        projection_type=ddb.ProjectionType.ALL,
    )

    # Comments: PK ORG#..#DASH#..#METRIC#.., SK COMMENT#<createdAt>#<commentId>
    comments_table = ddb.Table(
        stack,
        "CommentsTable",
        table_name=rn("hr-comments"),
        partition_key=ddb.Attribute(name="PK", type=ddb.AttributeType.STRING),
        sort_key=ddb.Attribute(name="SK", type=ddb.AttributeType.STRING),
        billing_mode=ddb.BillingMode.PAY_PER_REQUEST,
        point_in_time_recovery_specification=ddb.PointInTimeRecoverySpecification(point_in_time_recovery_enabled=True),
        removal_policy=RemovalPolicy.RETAIN,
        deletion_protection=True,
    )
    comments_table.add_global_secondary_index(
        index_name="OrganizationIndex",
        partition_key=ddb.Attribute(name="organizationId", type=ddb.AttributeType.STRING),
        sort_key=ddb.Attribute(name="createdAt", type=ddb.AttributeType.STRING),
        projection_type=ddb.ProjectionType.ALL,
    )

    cfn_comments = comments_table.node.default_child
    assert cfn_comments is not None
    cfn_comments.time_to_live_specification = ddb.CfnTable.TimeToLiveSpecificationProperty(
        attribute_name="ttl",
        enabled=True,
    )

    return {
        "organizations_table": organizations_table,
        "users_table": users_table,
        "comments_table": comments_table,
    }
