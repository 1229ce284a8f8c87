"""Business-rule edge cases.

A rule decides whether it applies to an operation and, if so, returns
variants against the request body. Body variants carry a partial body in
``value``; the edge synthesizer merges it over the valid request.
"""

from api_contract_gen.generator.models import Variant
from api_contract_gen.parser.base import ParsedOperation


class BusinessRule:
    """Base class for a pluggable business rule."""

    name = ""

    def matches(self, operation: ParsedOperation) -> bool:
        raise NotImplementedError

    def synthesize(self, operation: ParsedOperation) -> list[Variant]:
        raise NotImplementedError


class DuplicateEmailRule(BusinessRule):
    name = "duplicate_email"

    def matches(self, operation: ParsedOperation) -> bool:
        return operation.method == "POST" and "user" in operation.path.lower()

    def synthesize(self, operation: ParsedOperation) -> list[Variant]:
        return [
            Variant(
                name=self.name,
                field="requestBody",
                value={"email": "duplicate@example.com", "username": "newuser"},
                category="business_logic",
                expected="invalid",
                error_code=409,
                error_message="Email address already exists",
                provider_state="User with email duplicate@example.com exists",
            )
        ]


class SamePasswordRule(BusinessRule):
    name = "password_same_as_current"

    def matches(self, operation: ParsedOperation) -> bool:
        return operation.method == "PUT" and "password" in operation.path.lower()

    def synthesize(self, operation: ParsedOperation) -> list[Variant]:
        return [
            Variant(
                name=self.name,
                field="requestBody",
                value={"currentPassword": "oldPassword123", "newPassword": "oldPassword123"},
                category="business_logic",
                expected="invalid",
                error_code=400,
                error_message="New password must be different from current password",
                provider_state="User with current password oldPassword123",
            )
        ]


class InsufficientInventoryRule(BusinessRule):
    name = "insufficient_inventory"

    def matches(self, operation: ParsedOperation) -> bool:
        return operation.method == "POST" and "order" in operation.path.lower()

    def synthesize(self, operation: ParsedOperation) -> list[Variant]:
        return [
            Variant(
                name=self.name,
                field="requestBody",
                value={"productId": "prod123", "quantity": 1000},
                category="business_logic",
                expected="invalid",
                error_code=400,
                error_message="Insufficient inventory for requested quantity",
                provider_state="Product prod123 has only 5 items in stock",
            )
        ]


def default_rules() -> list[BusinessRule]:
    return [DuplicateEmailRule(), SamePasswordRule(), InsufficientInventoryRule()]
