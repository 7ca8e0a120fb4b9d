from drift_admin.workflow.runner import (
    TransactionWorkflow,
    Verification,
    WorkflowResult,
    check_authority,
)

__all__ = ["TransactionWorkflow", "Verification", "WorkflowResult", "check_authority"]
