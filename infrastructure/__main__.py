import os
import subprocess
import sys
from datetime import datetime

import pulumi
import pulumi_aws as aws
from components.lambda_function import DockerLambdaFunction, parameter_read_policy
from routes import AUTHORIZER_HANDLER, LAMBDA_FUNCTIONS, ROUTES, function_settings

config = pulumi.Config()
stage_name = config.get("stage") or "dev"
parameter_prefix = config.get("parameterPrefix") or "/saveplus"

current = aws.get_caller_identity()
current_region = aws.get_region()

# Shared ECR Repository for all Lambda functions
ecr_repository = aws.ecr.Repository(
    "saveplus-repo", name="saveplus-backend", force_delete=True
)


def get_image_tag() -> str:
    """Tag from image_tag.txt when the build wrote one, else a content hash."""
    if os.path.exists("image_tag.txt"):
        with open("image_tag.txt") as f:
            return f.read().strip()

    result = subprocess.run(
        [sys.executable, "get_image_tag.py"],
        capture_output=True,
        text=True,
        cwd=os.path.dirname(__file__),
    )
    if result.returncode == 0 and result.stdout.strip():
        return result.stdout.strip()
    pulumi.log.warn("get_image_tag.py failed, tagging image with the current time")
    return datetime.now().strftime("%Y%m%d-%H%M%S")


image_tag = get_image_tag()
image_uri = ecr_repository.repository_url.apply(lambda url: f"{url}:{image_tag}")

parameter_policy = pulumi.Output.all(current_region.name, current.account_id).apply(
    lambda args: parameter_read_policy(args[0], args[1], parameter_prefix)
)

# Supabase settings are read from the environment; API keys from Parameter Store
lambda_env_vars = {
    "SUPABASE_URL": config.require("supabaseUrl"),
    "SUPABASE_ANON_KEY": config.require("supabaseAnonKey"),
    "SUPABASE_SERVICE_ROLE_KEY": config.require_secret("supabaseServiceRoleKey"),
    "SUPABASE_JWT_SECRET": config.require_secret("supabaseJwtSecret"),
    "LOG_LEVEL": config.get("logLevel") or "INFO",
}

functions = {}
for name in LAMBDA_FUNCTIONS:
    settings = function_settings(name)
    functions[name] = DockerLambdaFunction(
        f"saveplus-{name}",
        handler=settings["handler"],
        shared_image_uri=image_uri,
        parameter_policy=parameter_policy,
        environment_vars=lambda_env_vars,
        timeout=settings["timeout"],
        memory_size=settings["memory"],
    )

authorizer_function = DockerLambdaFunction(
    "saveplus-authorizer",
    handler=AUTHORIZER_HANDLER,
    shared_image_uri=image_uri,
    parameter_policy=parameter_policy,
    environment_vars=lambda_env_vars,
)

api = aws.apigatewayv2.Api(
    "saveplus-api",
    protocol_type="HTTP",
    cors_configuration={
        "allow_origins": ["*"],
        "allow_headers": ["authorization", "x-client-info", "apikey", "content-type"],
        "allow_methods": ["GET", "POST", "OPTIONS"],
    },
)

authorizer = aws.apigatewayv2.Authorizer(
    "supabase-authorizer",
    api_id=api.id,
    authorizer_type="REQUEST",
    authorizer_uri=authorizer_function.invoke_arn,
    authorizer_payload_format_version="2.0",
    identity_sources=["$request.header.Authorization"],
    name="supabase-authorizer",
    authorizer_result_ttl_in_seconds=300,
    enable_simple_responses=True,
)

aws.lambda_.Permission(
    "authorizer-permission",
    action="lambda:InvokeFunction",
    function=authorizer_function.name,
    principal="apigateway.amazonaws.com",
    source_arn=pulumi.Output.concat(api.execution_arn, "/authorizers/", authorizer.id),
)

access_log_group = aws.cloudwatch.LogGroup(
    "saveplus-api-access-logs",
    name="/aws/apigateway/saveplus-api",
    retention_in_days=14,
)

stage = aws.apigatewayv2.Stage(
    "saveplus-stage",
    api_id=api.id,
    name=stage_name,
    auto_deploy=True,
    access_log_settings={
        "destination_arn": access_log_group.arn,
        "format": "$context.requestId $context.routeKey $context.status $context.error.message $context.integrationErrorMessage",
    },
)

for method, path, function_name, protected in ROUTES:
    resource_name = f"{function_name}-{method.lower()}"
    function = functions[function_name]

    aws.lambda_.Permission(
        f"{resource_name}-permission",
        action="lambda:InvokeFunction",
        function=function.name,
        principal="apigateway.amazonaws.com",
        # Wildcard path so routes with path parameters match
        source_arn=pulumi.Output.concat(api.execution_arn, "/", stage.name, "/", method, "/*"),
    )

    integration = aws.apigatewayv2.Integration(
        f"{resource_name}-integration",
        api_id=api.id,
        integration_type="AWS_PROXY",
        integration_uri=function.invoke_arn,
        integration_method="POST",
        payload_format_version="2.0",
    )

    route_args = {
        "api_id": api.id,
        "route_key": f"{method} {path}",
        "target": pulumi.Output.concat("integrations/", integration.id),
    }
    if protected:
        route_args["authorization_type"] = "CUSTOM"
        route_args["authorizer_id"] = authorizer.id

    aws.apigatewayv2.Route(f"{resource_name}-route", **route_args)

pulumi.export("ecr_repository_url", ecr_repository.repository_url)
pulumi.export("image_uri", image_uri)
pulumi.export("api_url", stage.invoke_url)
pulumi.export("api_id", api.id)
pulumi.export("authorizer_id", authorizer.id)
