import json
import logging
import re
from collections import deque
from typing import Any, final

from botocore.exceptions import BotoCoreError, ClientError

from stratus.aws.constants import APIGATEWAY_PRINCIPAL
from stratus.exceptions import (
    IgnorableProvisioningError,
    ProvisioningError,
    TeardownError,
    ValidationError,
)
from stratus.naming import content_name
from stratus.provision.api_tree import (
    ApiDefinition,
    MethodDefinition,
    ResourceTreeNode,
    StageDefinition,
    api_name,
    child_path,
)
from stratus.provision.wire import CustomResourceRequest

logger = logging.getLogger("stratus.provision.api_gateway")

RE_STATEMENT_ALREADY_EXISTS = re.compile(r"ResourceConflictException.*already exists")
ROOT_PATH = "/"
SUCCESS_STATUS_CODE = "200"


def statement_id(lambda_arn: str) -> str:
    """Statement id of the API's invoke permission on a function."""
    return content_name("Stratus", lambda_arn)


def lambda_invocation_uri(region: str, lambda_arn: str) -> str:
    return (
        f"arn:aws:apigateway:{region}:lambda:path/2015-03-31/functions/"
        f"{lambda_arn}/invocations"
    )


@final
class _ResourceTreeWalk:
    """Creates the resource tree for one REST API, one node at a time.

    Children are only queued after their parent's resource and methods exist, as
    their parent id is not known before that. After the first failure the queue is
    drained without doing any more work.
    """

    def __init__(self, provisioner: "ApiGatewayProvisioner", rest_api_id: str):
        self._provisioner = provisioner
        self._rest_api_id = rest_api_id
        self._resource_index: dict[str, str] = {}
        self._permission_cache: dict[str, set[str]] = {}
        self._error: ProvisioningError | None = None

    def run(self, root: ResourceTreeNode) -> None:
        self._resource_index = self._provisioner.resource_index(self._rest_api_id)
        logger.info("Resource index for %s: %s", self._rest_api_id, self._resource_index)

        queue: deque[tuple[ResourceTreeNode, str | None, str]] = deque([(root, None, ROOT_PATH)])
        while queue:
            node, parent_id, parent_path = queue.popleft()
            if self._error is not None:
                continue
            try:
                resource_id, path = self._ensure_resource(node, parent_id, parent_path)
                for method in node.methods.values():
                    self._ensure_method(resource_id, method)
            except ProvisioningError as e:
                logger.error("Resource tree provisioning failed: %s", e)  # noqa: TRY400
                self._error = e
                continue
            queue.extend((child, resource_id, path) for child in node.children)

        if self._error is not None:
            raise self._error

    def _ensure_resource(
        self, node: ResourceTreeNode, parent_id: str | None, parent_path: str
    ) -> tuple[str, str]:
        if parent_id is None:
            root_id = self._resource_index.get(ROOT_PATH)
            if root_id is None:
                raise ProvisioningError("get_resources", f"API {self._rest_api_id} has no root")
            return root_id, ROOT_PATH

        path = child_path(parent_path, node.path_component)
        existing_id = self._resource_index.get(path)
        if existing_id is not None:
            logger.info("Resource %s already exists as %s", path, existing_id)
            return existing_id, path

        created = self._provisioner.call(
            "create_resource",
            self._provisioner.apigateway.create_resource,
            restApiId=self._rest_api_id,
            parentId=parent_id,
            pathPart=node.path_component,
        )
        self._resource_index[path] = created["id"]
        logger.info("Created resource %s as %s", path, created["id"])
        return created["id"], path

    def _ensure_method(self, resource_id: str, method: MethodDefinition) -> None:
        apigateway = self._provisioner.apigateway
        call = self._provisioner.call
        common = {
            "restApiId": self._rest_api_id,
            "resourceId": resource_id,
            "httpMethod": method.http_method,
        }
        call(
            "put_method",
            apigateway.put_method,
            **common,
            authorizationType=method.authorization_type,
            apiKeyRequired=method.api_key_required,
            requestParameters={},
        )
        call(
            "put_method_response",
            apigateway.put_method_response,
            **common,
            statusCode=SUCCESS_STATUS_CODE,
            responseModels={"application/json": "Empty"},
        )
        call(
            "put_integration",
            apigateway.put_integration,
            **common,
            type="AWS",
            integrationHttpMethod="POST",
            uri=lambda_invocation_uri(self._provisioner.region, method.lambda_arn),
            cacheKeyParameters=[],
        )
        call(
            "put_integration_response",
            apigateway.put_integration_response,
            **common,
            statusCode=SUCCESS_STATUS_CODE,
            responseTemplates={"application/json": ""},
        )
        self._ensure_invoke_permission(method.lambda_arn)
        logger.info("Provisioned %s on resource %s", method.http_method, resource_id)

    def _ensure_invoke_permission(self, lambda_arn: str) -> None:
        sid = statement_id(lambda_arn)
        if lambda_arn not in self._permission_cache:
            self._permission_cache[lambda_arn] = self._provisioner.granted_statements(lambda_arn)
        granted = self._permission_cache[lambda_arn]
        if sid in granted:
            logger.debug("Invoke permission %s already granted on %s", sid, lambda_arn)
            return

        try:
            self._provisioner.grant_invoke_permission(lambda_arn, sid)
        except IgnorableProvisioningError as e:
            logger.info("Statement already exists: %s", e)
        granted.add(sid)


@final
class ApiGatewayProvisioner:
    """Provisions a REST API and its resource/method graph for one custom resource request.

    Clients are passed in, and all state (the path index and the permission cache)
    lives only for the request being handled.

    Args:
        apigateway: boto3 API Gateway client
        lambda_client: boto3 Lambda client
        region: Region used to build integration URIs
    """

    def __init__(self, apigateway: Any, lambda_client: Any, region: str):
        self.apigateway = apigateway
        self.lambda_client = lambda_client
        self.region = region

    def __call__(self, request: CustomResourceRequest) -> dict[str, Any]:
        return self.provision(request)

    def provision(self, request: CustomResourceRequest) -> dict[str, Any]:
        if request.is_delete:
            self._handle_delete(request)
            return {}

        if not request.properties:
            logger.warning("Resource properties not found, nothing to provision")
            return {}

        api = ApiDefinition.from_properties(request.properties)
        old_api = _api_to_revoke(request.old_properties)

        self.ensure_deleted(api.name, old_api)
        rest_api_id = self.ensure_created(api)
        self.ensure_resources(rest_api_id, api.resources)
        self.ensure_deployment(rest_api_id, api.stage)

        data = {"RestApiId": rest_api_id}
        if api.stage is not None:
            data["URL"] = (
                f"https://{rest_api_id}.execute-api.{self.region}.amazonaws.com/{api.stage.name}"
            )
        return data

    def call(self, stage: str, operation: Any, **params: Any) -> dict[str, Any]:
        """Invoke a client operation, turning remote failures into ProvisioningError."""
        logger.debug("%s %s", stage, params)
        try:
            return operation(**params)
        except (ClientError, BotoCoreError) as e:
            raise ProvisioningError(stage, str(e)) from e

    def _handle_delete(self, request: CustomResourceRequest) -> None:
        properties = request.properties or request.old_properties
        name = api_name(properties)
        if name is None:
            logger.warning("Nothing to delete, API properties have no Name")
            return
        # Permissions to revoke come from the properties being torn down
        old_api = _api_to_revoke(request.old_properties) or _api_to_revoke(properties)
        self.ensure_deleted(name, old_api)

    def find_rest_api(self, name: str) -> str | None:
        paginator = self.apigateway.get_paginator("get_rest_apis")
        for page in paginator.paginate():
            for item in page.get("items", []):
                if item.get("name") == name:
                    return item["id"]
        return None

    def ensure_deleted(self, name: str, old_api: ApiDefinition | None) -> None:
        """Delete the API called `name` if it exists, then revoke old invoke permissions.

        Failures are logged and never raised.
        """
        try:
            rest_api_id = self.find_rest_api(name)
            if rest_api_id is not None:
                logger.info("Deleting API %s (%s)", name, rest_api_id)
                self.apigateway.delete_rest_api(restApiId=rest_api_id)
        except (ClientError, BotoCoreError) as e:
            logger.warning("%s", TeardownError(f"Failed to delete API {name}: {e}"))
            return

        if old_api is None:
            return
        for lambda_arn in old_api.lambda_arns():
            try:
                self.lambda_client.remove_permission(
                    FunctionName=lambda_arn, StatementId=statement_id(lambda_arn)
                )
                logger.info("Removed invoke permission from %s", lambda_arn)
            except (ClientError, BotoCoreError) as e:
                logger.warning(
                    "%s", TeardownError(f"Failed to remove permission from {lambda_arn}: {e}")
                )

    def ensure_created(self, api: ApiDefinition) -> str:
        try:
            existing_id = self.find_rest_api(api.name)
        except (ClientError, BotoCoreError) as e:
            raise ProvisioningError("get_rest_apis", str(e)) from e
        if existing_id is not None:
            logger.info("Reusing API %s (%s)", api.name, existing_id)
            return existing_id

        params: dict[str, Any] = {"name": api.name}
        if api.description:
            params["description"] = api.description
        if api.clone_from:
            params["cloneFrom"] = api.clone_from
        created = self.call("create_rest_api", self.apigateway.create_rest_api, **params)
        logger.info("Created API %s (%s)", api.name, created["id"])
        return created["id"]

    def resource_index(self, rest_api_id: str) -> dict[str, str]:
        """Map of resource path to resource id for the API."""
        index: dict[str, str] = {}
        try:
            paginator = self.apigateway.get_paginator("get_resources")
            for page in paginator.paginate(restApiId=rest_api_id):
                for item in page.get("items", []):
                    index[item["path"]] = item["id"]
        except (ClientError, BotoCoreError) as e:
            raise ProvisioningError("get_resources", str(e)) from e
        return index

    def ensure_resources(self, rest_api_id: str, root: ResourceTreeNode) -> None:
        _ResourceTreeWalk(self, rest_api_id).run(root)

    def granted_statements(self, lambda_arn: str) -> set[str]:
        """Statement ids in the function's resource policy."""
        try:
            response = self.lambda_client.get_policy(FunctionName=lambda_arn)
        except ClientError as e:
            if e.response["Error"]["Code"] == "ResourceNotFoundException":
                return set()
            raise ProvisioningError("get_policy", str(e)) from e
        except BotoCoreError as e:
            raise ProvisioningError("get_policy", str(e)) from e

        try:
            policy = json.loads(response["Policy"])
        except (KeyError, TypeError, ValueError) as e:
            raise ProvisioningError("get_policy", f"Unreadable policy for {lambda_arn}") from e
        return {statement.get("Sid") for statement in policy.get("Statement", [])}

    def grant_invoke_permission(self, lambda_arn: str, sid: str) -> None:
        try:
            self.lambda_client.add_permission(
                Action="lambda:InvokeFunction",
                FunctionName=lambda_arn,
                Principal=APIGATEWAY_PRINCIPAL,
                StatementId=sid,
            )
        except ClientError as e:
            if RE_STATEMENT_ALREADY_EXISTS.search(str(e)):
                raise IgnorableProvisioningError("add_permission", str(e)) from e
            raise ProvisioningError("add_permission", str(e)) from e
        except BotoCoreError as e:
            raise ProvisioningError("add_permission", str(e)) from e

    def ensure_deployment(self, rest_api_id: str, stage: StageDefinition | None) -> None:
        if stage is None:
            logger.info("Stage not requested for %s", rest_api_id)
            return

        params: dict[str, Any] = {
            "restApiId": rest_api_id,
            "stageName": stage.name,
            "stageDescription": stage.description,
            "cacheClusterEnabled": stage.cache_cluster_enabled,
            "variables": stage.variables,
        }
        if stage.cache_cluster_size:
            params["cacheClusterSize"] = stage.cache_cluster_size
        logger.info("Creating deployment %s", params)
        self.call("create_deployment", self.apigateway.create_deployment, **params)


def _api_to_revoke(properties: dict[str, Any]) -> ApiDefinition | None:
    """Parse the API whose invoke permissions are revoked, or None if that is impossible."""
    if not properties:
        return None
    try:
        return ApiDefinition.from_properties(properties)
    except (ValidationError, AttributeError, TypeError) as e:
        logger.warning("%s", TeardownError(f"Cannot read API properties to revoke: {e}"))
        return None
