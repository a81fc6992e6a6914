"""
RecordDeployment request handler

Accepts one deployment submission and writes its records in a fixed order:

    Deployment → Customer → Environment → Resources → Endpoints

The deployment row always comes first because resource rows are keyed by
its generated row key. The whole payload is validated before the first
write, so a 400 never touches the store. After that the first failure that
survives the retry policy aborts the remaining writes; rows already written
stay in place.

The handler itself is runtime-agnostic (RecordDeploymentHandler.handle takes
the decoded JSON body). lambda_handler adapts it to an API Gateway proxy
integration.
"""

import base64
import binascii
import json
import logging
import time
from typing import Any, Callable, Dict, List, NamedTuple, Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from ..config import TrackerConfig
from ..exceptions import RecordOperationError, ValidationError
from ..handlers.records import DeploymentRecordsWriteApi
from ..models import (
    CustomerRecord,
    DeploymentRecord,
    DeploymentSubmission,
    EndpointRecord,
    EnvironmentRecord,
    ResourceRecord,
)

logger = logging.getLogger(__name__)

MISSING_IDS_MESSAGE = "Please provide customerId and environmentId in the request body"
INVALID_JSON_MESSAGE = "Request body must be a JSON object"
OPERATION_FAILED = "Operation failed"

TRANSIENT_STORE_ERROR = "TransientStoreError"
PERMANENT_STORE_ERROR = "PermanentStoreError"
UNHANDLED_ERROR = "UnhandledError"

RETRY_LATER_ACTION = (
    "Retry the request after a short delay. Records written before the failure "
    "were kept, so a retry adds new deployment history rows."
)


class HttpResponse(BaseModel):
    """Status code and JSON body of a handler outcome."""

    status_code: int = Field(..., description="HTTP status code")
    body: Dict[str, Any] = Field(default_factory=dict, description="JSON response body")

    def to_lambda_response(self) -> Dict[str, Any]:
        """Render as an API Gateway proxy integration response."""
        return {
            "isBase64Encoded": False,
            "statusCode": self.status_code,
            "headers": {"Content-Type": "application/json"},
            "body": json.dumps(self.body, default=str),
        }


class SubmissionPlan(NamedTuple):
    """Validated records for one submission, in write order."""
    deployment: DeploymentRecord
    customer: Optional[CustomerRecord]
    environment: Optional[EnvironmentRecord]
    resources: List[ResourceRecord]
    endpoints: List[EndpointRecord]


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _reject_constant(name: str):
    raise ValueError(f"{name} is not a valid JSON number")


class RecordDeploymentHandler:
    """Validates a deployment submission and writes its records."""

    def __init__(self, store: DeploymentRecordsWriteApi, clock: Callable[[], float] = time.perf_counter):
        """Initialize handler.

        Args:
            store: Record store the submission is written to
            clock: Monotonic clock in seconds, used for executionTime
        """
        self.store = store
        self._clock = clock

    def handle(self, body: Any) -> HttpResponse:
        """
        Process one submission.

        Args:
            body: Decoded JSON request body

        Returns:
            200 with the aggregated results, 400 for invalid submissions,
            408/500 for failed writes
        """
        start = self._clock()
        logger.info("Starting deployment record processing")
        logger.debug(f"Request body: {body}")

        try:
            plan = self.validate(body)
        except ValidationError as e:
            logger.warning(f"Rejected deployment submission: {e.message}")
            return self._validation_response(e)

        try:
            results = self.record(plan)
        except Exception as e:
            return self._error_response(e)

        execution_time = int(round((self._clock() - start) * 1000))
        logger.info(f"Total execution time: {execution_time}ms")

        return HttpResponse(
            status_code=200,
            body={
                "success": True,
                "results": results,
                "executionTime": execution_time,
            }
        )

    def validate(self, body: Any) -> SubmissionPlan:
        """
        Validate the body and build every record it describes.

        Raises:
            ValidationError: Missing ids, malformed shapes, or invalid records
        """
        if body is None:
            raise ValidationError(MISSING_IDS_MESSAGE)

        if not isinstance(body, dict):
            raise ValidationError(INVALID_JSON_MESSAGE)

        if _is_missing(body.get('customerId')) or _is_missing(body.get('environmentId')):
            raise ValidationError(MISSING_IDS_MESSAGE)

        try:
            submission = DeploymentSubmission.model_validate(body)
        except PydanticValidationError as e:
            errors = {
                ".".join(str(part) for part in error['loc']) or "body": error['msg']
                for error in e.errors()
            }
            raise ValidationError("Invalid deployment submission", errors, original_error=e) from e

        return SubmissionPlan(
            deployment=submission.deployment_record(),
            customer=submission.customer_record(),
            environment=submission.environment_record(),
            resources=submission.resource_records(),
            endpoints=submission.endpoint_records(),
        )

    def record(self, plan: SubmissionPlan) -> Dict[str, Any]:
        """
        Write the planned records in order, stopping at the first failure.

        Returns:
            Aggregated results: deployment key, customer/environment flags,
            and the resource and endpoint types written, in input order
        """
        results = {
            "deployment": None,
            "customer": False,
            "environment": False,
            "resources": [],
            "endpoints": [],
        }

        logger.info("Creating deployment record")
        deployment_key = self.store.put_deployment(plan.deployment)
        results["deployment"] = deployment_key
        logger.info(f"Deployment record created: {deployment_key}")

        if plan.customer is not None:
            logger.info("Creating customer record")
            results["customer"] = self.store.put_customer(plan.customer)

        if plan.environment is not None:
            logger.info("Creating environment record")
            results["environment"] = self.store.put_environment(plan.environment)

        if plan.resources:
            logger.info("Creating resource records")
            for resource in plan.resources:
                self.store.put_resource(resource.model_copy(update={'deployment_id': deployment_key}))
                results["resources"].append(resource.resource_type)
            logger.info(f"Resource records created: {len(results['resources'])}")

        if plan.endpoints:
            logger.info("Creating endpoint records")
            for endpoint in plan.endpoints:
                self.store.put_endpoint(endpoint)
                results["endpoints"].append(endpoint.service_type)
            logger.info(f"Endpoint records created: {len(results['endpoints'])}")

        return results

    def _validation_response(self, error: ValidationError) -> HttpResponse:
        body = {"error": error.message}
        if error.errors:
            body["details"] = error.errors
        return HttpResponse(status_code=400, body=body)

    def _error_response(self, error: Exception) -> HttpResponse:
        """Classify a write failure and build the error response."""
        if isinstance(error, ValidationError):
            logger.warning(f"Record rejected during write: {error.message}")
            return self._validation_response(error)

        if isinstance(error, RecordOperationError):
            logger.error(f"Error in RecordDeployment: {error.message}")
            body = {
                "error": OPERATION_FAILED,
                "message": error.message,
                "type": type(error.original_error).__name__,
                "recordKind": error.record_kind,
                "attempts": error.attempts,
            }
            if error.transient:
                body.update({
                    "errorKind": TRANSIENT_STORE_ERROR,
                    "retryable": True,
                    "recommendedAction": RETRY_LATER_ACTION,
                })
                return HttpResponse(status_code=408 if error.timed_out else 500, body=body)

            body.update({"errorKind": PERMANENT_STORE_ERROR, "retryable": False})
            return HttpResponse(status_code=500, body=body)

        logger.exception(f"Unhandled error in RecordDeployment: {error}")
        return HttpResponse(
            status_code=500,
            body={
                "error": OPERATION_FAILED,
                "message": "An unexpected error occurred while recording the deployment",
                "errorKind": UNHANDLED_ERROR,
                "type": type(error).__name__,
                "retryable": False,
            }
        )


# =============================================================================
# AWS Lambda entry point
# =============================================================================

_handler: Optional[RecordDeploymentHandler] = None


def get_handler() -> RecordDeploymentHandler:
    """Build the process-wide handler on first use.

    The write API is created once per process, so each table is provisioned
    at most once per process lifetime.
    """
    global _handler
    if _handler is None:
        config = TrackerConfig.from_env()
        logging.getLogger().setLevel(logging.DEBUG if config.enable_debug_logging else logging.INFO)
        _handler = RecordDeploymentHandler(DeploymentRecordsWriteApi(config))
    return _handler


def parse_event_body(event: Optional[Dict[str, Any]]) -> Any:
    """
    Decode the JSON body of an API Gateway proxy event.

    Raises:
        ValidationError: Body is not valid JSON (or valid base64 when flagged)
    """
    raw = (event or {}).get("body")
    if raw is None or raw == "":
        return None
    if isinstance(raw, (dict, list)):
        return raw

    try:
        if (event or {}).get("isBase64Encoded"):
            raw = base64.b64decode(raw).decode("utf-8")
        return json.loads(raw, parse_constant=_reject_constant)
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise ValidationError(INVALID_JSON_MESSAGE, original_error=e) from e


def lambda_handler(event, context):
    """API Gateway (proxy integration) handler for POST /RecordDeployment."""
    handler = get_handler()
    request_id = getattr(context, "aws_request_id", None)
    if request_id:
        logger.info(f"RecordDeployment invocation {request_id}")

    try:
        body = parse_event_body(event)
    except ValidationError as e:
        logger.warning(f"Rejected request body: {e.original_error}")
        return HttpResponse(status_code=400, body={"error": e.message}).to_lambda_response()

    return handler.handle(body).to_lambda_response()
