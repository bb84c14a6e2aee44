"""Exception hierarchy for the document pipeline"""


class LegalMarkdownError(Exception):
    """Base class for all errors raised by legalmd."""


class FrontmatterError(LegalMarkdownError, ValueError):
    """Front matter could not be parsed as a YAML mapping."""


class StageOrderError(LegalMarkdownError):
    """Realized stage order violates a declared ordering constraint."""

    def __init__(self, violations: list, suggested_order: list[str] | None = None):
        self.violations = violations
        self.suggested_order = suggested_order
        lines = "\n  - ".join(v.rule for v in violations)
        msg = f"Stage order validation failed:\n  - {lines}"
        if suggested_order:
            msg += f"\n\nSuggested order: {' -> '.join(suggested_order)}"
        super().__init__(msg)


class DiagnosticError(LegalMarkdownError):
    """Raised for an error diagnostic when the caller asked for throw-on-error."""

    def __init__(self, diagnostic):
        self.diagnostic = diagnostic
        super().__init__(f"[{diagnostic.stage}] {diagnostic.code}: {diagnostic.message}")
