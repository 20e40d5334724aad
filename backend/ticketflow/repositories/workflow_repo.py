"""Workflow Repository - Data access for workflows and relational transitions"""
from typing import Any, Dict, List, Optional
from pymongo.client_session import ClientSession
from pymongo.collection import Collection
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from .mongo_client import ACTIVE_WORKFLOW_INDEX, get_collection
from ..domain.models import Workflow, WorkflowTransition
from ..domain.enums import WorkflowStatus
from ..domain.errors import (
    WorkflowNotFoundError, WorkflowTransitionNotFoundError, AlreadyExistsError,
    ConcurrencyError
)
from ..utils.logger import get_logger
from ..utils.time import utc_now

logger = get_logger(__name__)


def violates_active_index(error: DuplicateKeyError) -> bool:
    """True when the duplicate key is a second ACTIVE workflow for a tenant"""
    details = error.details or {}
    if ACTIVE_WORKFLOW_INDEX in str(details.get("errmsg") or error):
        return True
    key_pattern = details.get("keyPattern") or {}
    return set(key_pattern) == {"tenant_id", "status"}


def active_workflow_conflict(tenant_id: str, workflow_id: str) -> ConcurrencyError:
    logger.warning(
        f"Concurrent activation rejected for workflow {workflow_id}",
        extra={"workflow_id": workflow_id, "tenant_id": tenant_id}
    )
    return ConcurrencyError(
        "Another workflow was activated concurrently. Reload and retry.",
        details={"workflow_id": workflow_id, "tenant_id": tenant_id}
    )


class WorkflowRepository:
    """Repository for workflow operations"""
    
    def __init__(self):
        self._workflows: Collection = get_collection("workflows")
        self._transitions: Collection = get_collection("workflow_transitions")
    
    # =========================================================================
    # Workflow CRUD
    # =========================================================================
    
    def create_workflow(
        self,
        workflow: Workflow,
        session: Optional[ClientSession] = None
    ) -> Workflow:
        """Create a new workflow"""
        doc = workflow.model_dump(mode="python")
        doc["_id"] = workflow.workflow_id
        
        try:
            self._workflows.insert_one(doc, session=session)
        except DuplicateKeyError as e:
            if violates_active_index(e):
                raise active_workflow_conflict(workflow.tenant_id, workflow.workflow_id)
            raise AlreadyExistsError(f"Workflow {workflow.workflow_id} already exists")
        
        logger.info(
            f"Created workflow: {workflow.workflow_id}",
            extra={"workflow_id": workflow.workflow_id, "tenant_id": workflow.tenant_id}
        )
        return workflow
    
    def get_workflow(
        self,
        tenant_id: str,
        workflow_id: str,
        session: Optional[ClientSession] = None
    ) -> Optional[Workflow]:
        """Get workflow by ID (soft-deleted included)"""
        doc = self._workflows.find_one(
            {"tenant_id": tenant_id, "workflow_id": workflow_id},
            session=session
        )
        if doc:
            doc.pop("_id", None)
            return Workflow.model_validate(doc)
        return None
    
    def get_workflow_or_raise(
        self,
        tenant_id: str,
        workflow_id: str,
        session: Optional[ClientSession] = None
    ) -> Workflow:
        """Get workflow by ID or raise error"""
        workflow = self.get_workflow(tenant_id, workflow_id, session=session)
        if not workflow:
            raise WorkflowNotFoundError(f"Workflow {workflow_id} not found")
        return workflow
    
    def list_workflows(
        self,
        tenant_id: str,
        include_deleted: bool = False
    ) -> List[Workflow]:
        """List workflows, newest first"""
        query: Dict[str, Any] = {"tenant_id": tenant_id}
        if not include_deleted:
            query["deleted_at"] = None
        
        cursor = self._workflows.find(query).sort("created_at", DESCENDING)
        
        workflows = []
        for doc in cursor:
            doc.pop("_id", None)
            workflows.append(Workflow.model_validate(doc))
        return workflows
    
    def find_active(
        self,
        tenant_id: str,
        session: Optional[ClientSession] = None
    ) -> Optional[Workflow]:
        """Get the single ACTIVE, non-deleted workflow"""
        doc = self._workflows.find_one(
            {
                "tenant_id": tenant_id,
                "status": WorkflowStatus.ACTIVE.value,
                "deleted_at": None
            },
            session=session
        )
        if doc:
            doc.pop("_id", None)
            return Workflow.model_validate(doc)
        return None
    
    def find_system_default(
        self,
        tenant_id: str,
        session: Optional[ClientSession] = None
    ) -> Optional[Workflow]:
        """Get the protected system default workflow"""
        doc = self._workflows.find_one(
            {"tenant_id": tenant_id, "is_system_default": True},
            session=session
        )
        if doc:
            doc.pop("_id", None)
            return Workflow.model_validate(doc)
        return None
    
    def update_workflow(
        self,
        tenant_id: str,
        workflow_id: str,
        updates: Dict[str, Any],
        session: Optional[ClientSession] = None
    ) -> Workflow:
        """Update workflow fields"""
        updates["updated_at"] = utc_now()
        
        try:
            result = self._workflows.find_one_and_update(
                {"tenant_id": tenant_id, "workflow_id": workflow_id},
                {"$set": updates},
                return_document=ReturnDocument.AFTER,
                session=session
            )
        except DuplicateKeyError as e:
            if violates_active_index(e):
                raise active_workflow_conflict(tenant_id, workflow_id)
            raise
        
        if result is None:
            raise WorkflowNotFoundError(f"Workflow {workflow_id} not found")
        
        result.pop("_id", None)
        logger.info(
            f"Updated workflow: {workflow_id}",
            extra={"workflow_id": workflow_id, "tenant_id": tenant_id}
        )
        return Workflow.model_validate(result)
    
    def deactivate_all(
        self,
        tenant_id: str,
        exclude_workflow_id: Optional[str] = None,
        session: Optional[ClientSession] = None
    ) -> int:
        """Set every ACTIVE workflow of the tenant (except one) to INACTIVE"""
        query: Dict[str, Any] = {
            "tenant_id": tenant_id,
            "status": WorkflowStatus.ACTIVE.value
        }
        if exclude_workflow_id:
            query["workflow_id"] = {"$ne": exclude_workflow_id}
        
        result = self._workflows.update_many(
            query,
            {"$set": {"status": WorkflowStatus.INACTIVE.value, "updated_at": utc_now()}},
            session=session
        )
        if result.modified_count:
            logger.info(
                f"Deactivated {result.modified_count} workflow(s)",
                extra={"tenant_id": tenant_id, "workflow_id": exclude_workflow_id}
            )
        return result.modified_count
    
    def clear_default_flag(
        self,
        tenant_id: str,
        exclude_workflow_id: Optional[str] = None,
        skip_system_default: bool = False,
        session: Optional[ClientSession] = None
    ) -> int:
        """Unset is_default on the tenant's other workflows"""
        query: Dict[str, Any] = {"tenant_id": tenant_id, "is_default": True}
        if exclude_workflow_id:
            query["workflow_id"] = {"$ne": exclude_workflow_id}
        if skip_system_default:
            query["is_system_default"] = {"$ne": True}
        
        result = self._workflows.update_many(
            query,
            {"$set": {"is_default": False, "updated_at": utc_now()}},
            session=session
        )
        return result.modified_count
    
    def delete_workflow(
        self,
        tenant_id: str,
        workflow_id: str,
        session: Optional[ClientSession] = None
    ) -> None:
        """Hard delete a workflow and its relational transitions"""
        self._transitions.delete_many({"workflow_id": workflow_id}, session=session)
        result = self._workflows.delete_one(
            {"tenant_id": tenant_id, "workflow_id": workflow_id},
            session=session
        )
        if result.deleted_count == 0:
            raise WorkflowNotFoundError(f"Workflow {workflow_id} not found")
        logger.info(
            f"Deleted workflow: {workflow_id}",
            extra={"workflow_id": workflow_id, "tenant_id": tenant_id}
        )
    
    # =========================================================================
    # Relational Transitions
    # =========================================================================
    
    def create_transition(
        self,
        transition: WorkflowTransition,
        session: Optional[ClientSession] = None
    ) -> WorkflowTransition:
        """Create a relational transition"""
        doc = transition.model_dump(mode="python")
        doc["_id"] = transition.transition_id
        
        try:
            self._transitions.insert_one(doc, session=session)
        except DuplicateKeyError:
            raise AlreadyExistsError(
                f"Transition {transition.from_state} -> {transition.to_state} already exists",
                details={"workflow_id": transition.workflow_id}
            )
        
        logger.info(
            f"Created transition: {transition.transition_id}",
            extra={"workflow_id": transition.workflow_id, "transition_id": transition.transition_id}
        )
        return transition
    
    def get_transition(self, tenant_id: str, transition_id: str) -> Optional[WorkflowTransition]:
        """Get relational transition by ID"""
        doc = self._transitions.find_one({"tenant_id": tenant_id, "transition_id": transition_id})
        if doc:
            doc.pop("_id", None)
            return WorkflowTransition.model_validate(doc)
        return None
    
    def get_transition_or_raise(self, tenant_id: str, transition_id: str) -> WorkflowTransition:
        """Get relational transition by ID or raise error"""
        transition = self.get_transition(tenant_id, transition_id)
        if not transition:
            raise WorkflowTransitionNotFoundError(f"Transition {transition_id} not found")
        return transition
    
    def list_transitions(
        self,
        workflow_id: str,
        session: Optional[ClientSession] = None
    ) -> List[WorkflowTransition]:
        """List all relational transitions of a workflow in declared order"""
        cursor = self._transitions.find(
            {"workflow_id": workflow_id},
            session=session
        ).sort([("order", ASCENDING), ("created_at", ASCENDING)])
        
        transitions = []
        for doc in cursor:
            doc.pop("_id", None)
            transitions.append(WorkflowTransition.model_validate(doc))
        return transitions
    
    def update_transition(
        self,
        tenant_id: str,
        transition_id: str,
        updates: Dict[str, Any],
        session: Optional[ClientSession] = None
    ) -> WorkflowTransition:
        """Update relational transition fields"""
        updates["updated_at"] = utc_now()
        
        result = self._transitions.find_one_and_update(
            {"tenant_id": tenant_id, "transition_id": transition_id},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
            session=session
        )
        if result is None:
            raise WorkflowTransitionNotFoundError(f"Transition {transition_id} not found")
        
        result.pop("_id", None)
        return WorkflowTransition.model_validate(result)
    
    def delete_transition(
        self,
        tenant_id: str,
        transition_id: str,
        session: Optional[ClientSession] = None
    ) -> None:
        """Delete relational transition"""
        result = self._transitions.delete_one(
            {"tenant_id": tenant_id, "transition_id": transition_id},
            session=session
        )
        if result.deleted_count == 0:
            raise WorkflowTransitionNotFoundError(f"Transition {transition_id} not found")
        logger.info(f"Deleted transition: {transition_id}", extra={"transition_id": transition_id})
