"""AppSync data source creation."""

from typing import TYPE_CHECKING

from aws_cdk import aws_appsync as appsync

if TYPE_CHECKING:
    from aws_cdk import aws_lambda as lambda_


def create_lambda_datasources(
    api: appsync.GraphqlApi,
    lambda_functions: dict[str, "lambda_.IFunction"],
) -> dict[str, appsync.LambdaDataSource]:
    """
    Create Lambda data sources for the AppSync API.

    Args:
        api: The AppSync GraphQL API
        lambda_functions: GraphQL field name -> Lambda function

    Returns:
        Dictionary of field name to Lambda data source
    """
    datasources: dict[str, appsync.LambdaDataSource] = {}

    for field_name, fn in lambda_functions.items():
        ds_name = field_name[0].upper() + field_name[1:] + "DS"
        datasources[field_name] = api.add_lambda_data_source(ds_name, lambda_function=fn)

    return datasources
