"""Expense assistant tools: policy search, claim submission, claim lookup."""

from __future__ import annotations

import logging
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from expense_agent.agent.registry import ToolRegistry, ToolSpec
from expense_agent.claims.store import SqliteClaimsStore
from expense_agent.errors import ServiceError, ToolExecutionError
from expense_agent.retrieval.retriever import PolicyRetriever

logger = logging.getLogger(__name__)

POLICY_SEARCH = "policy_search"
SUBMIT_CLAIM = "submit_claim"
GET_USER_CLAIMS = "get_user_claims"

NO_POLICY_RESULTS = "No relevant sections were found in the expense policy."
SUBMIT_FAILED = "Failed to submit expense claim due to an internal error."
LOOKUP_FAILED = "Failed to retrieve claims due to an internal error."
SEARCH_FAILED = "Failed to search the expense policy due to an internal error."


class PolicySearchArgs(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    query: str = Field(min_length=1, description="The policy question to look up.")
    top_k: int = Field(default=4, ge=1, le=10, description="How many policy sections to return.")


class _EmailArgs(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr = Field(description="The email address of the claimant.")


class SubmitClaimArgs(_EmailArgs):
    description: str = Field(min_length=1, description="A description of the expense.")
    amount: Decimal = Field(
        gt=0,
        max_digits=12,
        decimal_places=2,
        description="The amount of the expense claim.",
    )


class GetUserClaimsArgs(_EmailArgs):
    pass


ToolArgs = PolicySearchArgs | SubmitClaimArgs | GetUserClaimsArgs


class ExpenseToolbox:
    """Handlers for the closed set of expense tools.

    `dispatch` matches on the argument type, so each tool is reachable only
    through its validated argument model. Service failures are turned into
    `ToolExecutionError` carrying a user-facing message, which the registry
    reports back to the agent as a failed result.
    """

    def __init__(self, retriever: PolicyRetriever, claims_store: SqliteClaimsStore) -> None:
        self.retriever = retriever
        self.claims_store = claims_store

    def dispatch(self, args: ToolArgs) -> str:
        if isinstance(args, PolicySearchArgs):
            return self.policy_search(args)
        if isinstance(args, SubmitClaimArgs):
            return self.submit_claim(args)
        if isinstance(args, GetUserClaimsArgs):
            return self.get_user_claims(args)
        raise TypeError(f"Unsupported tool arguments: {type(args).__name__}")

    def policy_search(self, args: PolicySearchArgs) -> str:
        try:
            hits = self.retriever.retrieve(args.query, top_k=args.top_k)
        except ServiceError as exc:
            logger.exception("Policy search failed")
            raise ToolExecutionError(SEARCH_FAILED) from exc
        if not hits:
            return NO_POLICY_RESULTS
        return "\n\n".join(f"[{hit.chunk.chunk_id}] {hit.chunk.text.strip()}" for hit in hits)

    def submit_claim(self, args: SubmitClaimArgs) -> str:
        try:
            claim = self.claims_store.submit(args.email, args.description, args.amount)
        except ServiceError as exc:
            logger.exception("Error saving claim for %s", args.email)
            raise ToolExecutionError(SUBMIT_FAILED) from exc
        return (
            f"Successfully submitted expense claim #{claim.id} for {claim.email}: "
            f"{claim.description} (${claim.amount:.2f}). "
            f"The claim has been recorded with status {claim.status}."
        )

    def get_user_claims(self, args: GetUserClaimsArgs) -> str:
        try:
            claims = self.claims_store.list_by_email(args.email)
        except ServiceError as exc:
            logger.exception("Error fetching claims for %s", args.email)
            raise ToolExecutionError(LOOKUP_FAILED) from exc
        if not claims:
            return f"No past claims found for {args.email}."

        lines = [
            f"- Claim ID {claim.id}: {claim.description} for ${claim.amount:.2f} "
            f"(Status: {claim.status}, Submitted on: {claim.created_at.date().isoformat()})"
            for claim in claims
        ]
        return f"Here are the past claims for {args.email}:\n" + "\n".join(lines)


def register_expense_tools(registry: ToolRegistry, toolbox: ExpenseToolbox) -> None:
    """Register the three expense tools used by the planner."""

    registry.register(
        ToolSpec(
            name=POLICY_SEARCH,
            description=(
                "Search the corporate expense policy. For any question about expense "
                "rules, limits, and procedures, you must use this tool."
            ),
            args_schema=PolicySearchArgs,
            handler=toolbox.dispatch,
        )
    )
    registry.register(
        ToolSpec(
            name=SUBMIT_CLAIM,
            description=(
                "Submit an expense claim. Requires the claimant's email, a description "
                "of the expense, and the amount."
            ),
            args_schema=SubmitClaimArgs,
            handler=toolbox.dispatch,
        )
    )
    registry.register(
        ToolSpec(
            name=GET_USER_CLAIMS,
            description=(
                "List all past expense claims submitted by a user. Requires the user's "
                "email address."
            ),
            args_schema=GetUserClaimsArgs,
            handler=toolbox.dispatch,
        )
    )
