"""Success synthesizer — default, minimal and maximal happy-path requests."""

from api_contract_gen.generator.models import TestCase
from api_contract_gen.parser.base import ParsedOperation
from .base import OperationAnalysis, Synthesizer, build_base_request, success_response

# (discriminator, optional field mode, description)
VARIANTS = (
    (None, "documented", "with a typical valid request"),
    ("minimal", "none", "with only the required fields"),
    ("maximal", "all", "with every documented field"),
)


class SuccessSynthesizer(Synthesizer):
    category = "success"

    def synthesize(self, operation: ParsedOperation, analysis: OperationAnalysis) -> list[TestCase]:
        cases = []
        for discriminator, optional_fields, text in VARIANTS:
            if optional_fields == "none":
                parts = analysis.base_request
            else:
                parts = build_base_request(operation, self.mock, self.security, optional_fields)
            summary = operation.summary or f"{operation.method} {operation.path}"
            cases.append(
                self.make_case(
                    analysis,
                    discriminator,
                    f"{summary} succeeds {text}",
                    parts.to_spec(operation),
                    success_response(analysis),
                    then=f"the provider responds with {analysis.success_status}",
                    tags=["happy-path"],
                )
            )
        return cases
