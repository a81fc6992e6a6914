from .record_deployment import (
    HttpResponse,
    RecordDeploymentHandler,
    SubmissionPlan,
    lambda_handler,
    parse_event_body,
)

__all__ = [
    "HttpResponse",
    "RecordDeploymentHandler",
    "SubmissionPlan",
    "lambda_handler",
    "parse_event_body",
]
