"""Query and Mutation resolvers for the admin GraphQL API."""

from aws_cdk import aws_appsync as appsync

QUERY_FIELDS = ("listAllOrganizations", "getSystemMetrics")
MUTATION_FIELDS = (
    "createOrganization",
    "approveOrganization",
    "rejectOrganization",
    "suspendOrganization",
    "reactivateOrganization",
)


def create_resolvers(
    api: appsync.GraphqlApi,
    lambda_datasources: dict[str, appsync.LambdaDataSource],
) -> dict[str, appsync.Resolver]:
    """
    Attach a direct Lambda resolver to every admin field.

    Fields without a data source are skipped.
    """
    resolvers: dict[str, appsync.Resolver] = {}

    for type_name, fields in (("Query", QUERY_FIELDS), ("Mutation", MUTATION_FIELDS)):
        for field_name in fields:
            lambda_ds = lambda_datasources.get(field_name)
            if lambda_ds is None:
                continue
            resolvers[field_name] = lambda_ds.create_resolver(
                f"{field_name}Resolver",
                type_name=type_name,
                field_name=field_name,
            )

    return resolvers
