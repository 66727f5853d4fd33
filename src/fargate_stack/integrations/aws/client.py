"""CloudFormation client used to submit synthesized stacks."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import boto3
import structlog
from botocore.exceptions import ClientError, EndpointConnectionError, WaiterError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from fargate_stack.integrations.aws.exceptions import (
    ProvisioningConnectionError,
    ProvisioningError,
    StackNotFoundError,
)

if TYPE_CHECKING:
    from fargate_stack.integrations.aws.models.base import Tag

logger = structlog.get_logger()

THROTTLING_CODES = frozenset({"Throttling", "ThrottlingException", "RequestLimitExceeded"})
NO_UPDATES_MESSAGE = "No updates are to be performed"
CAPABILITIES = ["CAPABILITY_IAM", "CAPABILITY_NAMED_IAM"]


class CloudFormationClient:
    """Thin wrapper around the boto3 CloudFormation client.

    Maps botocore failures onto ProvisioningError and retries throttled or
    unreachable calls with exponential backoff. Creating or updating a
    stack waits for the engine to finish.

    Example:
        ```python
        client = CloudFormationClient(region="eu-west-1")
        client.deploy_stack("AppName-dev", template_body)
        print(client.get_outputs("AppName-dev"))
        ```
    """

    def __init__(
        self,
        region: str,
        retries: int = 3,
        client: Any | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            region: Region the stacks live in.
            retries: Attempts for throttled or unreachable calls.
            client: Preconfigured boto3 CloudFormation client to use instead
                of creating one.
        """
        self.region = region
        self._retries = retries
        if client is None:
            client = boto3.client("cloudformation", region_name=region)
        self._client = client
        logger.debug("CloudFormation client initialized", region=region)

    def _make_retry_decorator(self) -> Any:
        return retry(
            retry=retry_if_exception_type(ProvisioningConnectionError),
            stop=stop_after_attempt(self._retries),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            reraise=True,
        )

    def _call(self, operation: str, stack_name: str, **kwargs: Any) -> dict[str, Any]:
        """Invoke a CloudFormation API operation, translating errors.

        Raises:
            StackNotFoundError: If the engine reports the stack missing.
            ProvisioningConnectionError: If the endpoint is unreachable or throttling.
            ProvisioningError: For any other engine error.
        """
        log = logger.bind(operation=operation, stack=stack_name)
        try:
            log.debug("CloudFormation request")
            response: dict[str, Any] = getattr(self._client, operation)(**kwargs)
            return response
        except EndpointConnectionError as e:
            log.error("CloudFormation endpoint unreachable", error=str(e))
            raise ProvisioningConnectionError(
                message=f"Failed to reach CloudFormation: {e}",
                stack_name=stack_name,
                operation=operation,
                original_error=e,
            ) from e
        except ClientError as e:
            error = e.response.get("Error", {})
            code = error.get("Code", "")
            message = error.get("Message", str(e))
            if code in THROTTLING_CODES:
                log.warning("CloudFormation throttled request", code=code)
                raise ProvisioningConnectionError(
                    message=message,
                    stack_name=stack_name,
                    operation=operation,
                    error_code=code,
                    original_error=e,
                ) from e
            if code == "ValidationError" and "does not exist" in message:
                raise StackNotFoundError(stack_name, operation=operation, original_error=e) from e
            log.error("CloudFormation request failed", code=code, error=message)
            raise ProvisioningError(
                message=message,
                stack_name=stack_name,
                operation=operation,
                error_code=code,
                original_error=e,
            ) from e

    def _request(self, operation: str, stack_name: str, **kwargs: Any) -> dict[str, Any]:
        retry_decorator = self._make_retry_decorator()
        result: dict[str, Any] = retry_decorator(self._call)(operation, stack_name, **kwargs)
        return result

    def _wait(self, waiter_name: str, stack_name: str) -> None:
        try:
            self._client.get_waiter(waiter_name).wait(StackName=stack_name)
        except WaiterError as e:
            raise ProvisioningError(
                message=f"Stack did not reach the expected state: {e}",
                stack_name=stack_name,
                operation=waiter_name,
                original_error=e,
            ) from e

    def describe_stack(self, stack_name: str) -> dict[str, Any]:
        """Return the stack description.

        Raises:
            StackNotFoundError: If the stack doesn't exist.
        """
        response = self._request("describe_stacks", stack_name, StackName=stack_name)
        stacks = response.get("Stacks", [])
        if not stacks:
            raise StackNotFoundError(stack_name, operation="describe_stacks")
        stack: dict[str, Any] = stacks[0]
        return stack

    def stack_exists(self, stack_name: str) -> bool:
        """Check whether a live (not deleted) stack exists."""
        try:
            stack = self.describe_stack(stack_name)
        except StackNotFoundError:
            return False
        return stack.get("StackStatus") != "DELETE_COMPLETE"

    def get_outputs(self, stack_name: str) -> dict[str, str]:
        """Return the stack outputs keyed by output name."""
        stack = self.describe_stack(stack_name)
        return {output["OutputKey"]: output["OutputValue"] for output in stack.get("Outputs", [])}

    def deploy_stack(
        self,
        stack_name: str,
        template: dict[str, Any],
        parameters: dict[str, str] | None = None,
        tags: list[Tag] | None = None,
        wait: bool = True,
    ) -> str:
        """Create the stack, or update it if it already exists.

        Args:
            stack_name: Name of the stack.
            template: Synthesized template.
            parameters: Template parameter values.
            tags: Stack-level tags.
            wait: Block until the engine finishes.

        Returns:
            ``"created"``, ``"updated"`` or ``"unchanged"``.
        """
        kwargs: dict[str, Any] = {
            "StackName": stack_name,
            "TemplateBody": json.dumps(template),
            "Parameters": [
                {"ParameterKey": key, "ParameterValue": value}
                for key, value in sorted((parameters or {}).items())
            ],
            "Capabilities": CAPABILITIES,
            "Tags": [tag.to_cfn() for tag in tags or []],
        }

        if self.stack_exists(stack_name):
            try:
                self._request("update_stack", stack_name, **kwargs)
            except ProvisioningError as e:
                if NO_UPDATES_MESSAGE in e.message:
                    logger.info("Stack already up to date", stack=stack_name)
                    return "unchanged"
                raise
            if wait:
                self._wait("stack_update_complete", stack_name)
            logger.info("Stack updated", stack=stack_name)
            return "updated"

        self._request("create_stack", stack_name, **kwargs)
        if wait:
            self._wait("stack_create_complete", stack_name)
        logger.info("Stack created", stack=stack_name)
        return "created"

    def delete_stack(self, stack_name: str, wait: bool = True) -> None:
        """Delete the stack.

        Raises:
            StackNotFoundError: If the stack doesn't exist.
        """
        if not self.stack_exists(stack_name):
            raise StackNotFoundError(stack_name, operation="delete_stack")
        self._request("delete_stack", stack_name, StackName=stack_name)
        if wait:
            self._wait("stack_delete_complete", stack_name)
        logger.info("Stack deleted", stack=stack_name)
