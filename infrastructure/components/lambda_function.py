import json
from typing import Dict, List, Optional

import pulumi
import pulumi_aws as aws


def parameter_read_policy(region: str, account_id: str, parameter_prefix: str) -> str:
    """Inline policy allowing reads of every parameter under the prefix."""
    prefix = parameter_prefix.strip("/")
    return json.dumps(
        {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Effect": "Allow",
                    "Action": [
                        "ssm:GetParameter",
                        "ssm:GetParameters",
                        "ssm:GetParametersByPath",
                    ],
                    "Resource": f"arn:aws:ssm:{region}:{account_id}:parameter/{prefix}/*",
                }
            ],
        }
    )


class DockerLambdaFunction(pulumi.ComponentResource):
    """
    One API Lambda running from the shared container image, with:
    - CloudWatch Log Group
    - IAM Role with basic execution permissions
    - Read access to the Parameter Store prefix holding API keys
    - Environment variables
    """

    def __init__(
        self,
        name: str,
        handler: str,
        shared_image_uri: pulumi.Input[str],
        parameter_policy: pulumi.Input[str],
        environment_vars: Optional[Dict[str, pulumi.Input[str]]] = None,
        additional_policies: Optional[List[pulumi.Input[str]]] = None,
        timeout: int = 30,
        memory_size: int = 128,
        log_retention_days: int = 14,
        opts: Optional[pulumi.ResourceOptions] = None,
    ):
        super().__init__("saveplus:aws:DockerLambdaFunction", name, None, opts)
        child = pulumi.ResourceOptions(parent=self)

        self.log_group = aws.cloudwatch.LogGroup(
            f"{name}-log-group",
            name=f"/aws/lambda/{name}",
            retention_in_days=log_retention_days,
            opts=child,
        )

        self.role = aws.iam.Role(
            f"{name}-role",
            assume_role_policy=json.dumps(
                {
                    "Version": "2012-10-17",
                    "Statement": [
                        {
                            "Action": "sts:AssumeRole",
                            "Effect": "Allow",
                            "Principal": {"Service": "lambda.amazonaws.com"},
                        }
                    ],
                }
            ),
            opts=child,
        )

        aws.iam.RolePolicyAttachment(
            f"{name}-basic-policy",
            role=self.role.name,
            policy_arn="arn:aws:iam::aws:policy/service-role/AWSLambdaBasicExecutionRole",
            opts=child,
        )

        policies = [parameter_policy] + list(additional_policies or [])
        self.inline_policies = [
            aws.iam.RolePolicy(f"{name}-policy-{i}", role=self.role.id, policy=doc, opts=child)
            for i, doc in enumerate(policies)
        ]

        self.function = aws.lambda_.Function(
            f"{name}-function",
            package_type="Image",
            image_uri=shared_image_uri,
            role=self.role.arn,
            timeout=timeout,
            memory_size=memory_size,
            environment={"variables": environment_vars or {}},
            image_config={"commands": [handler]},
            opts=pulumi.ResourceOptions(parent=self, depends_on=[self.log_group]),
        )

        self.arn = self.function.arn
        self.name = self.function.name
        self.invoke_arn = self.function.invoke_arn

        self.register_outputs(
            {
                "arn": self.arn,
                "name": self.name,
                "invoke_arn": self.invoke_arn,
                "role_arn": self.role.arn,
            }
        )
