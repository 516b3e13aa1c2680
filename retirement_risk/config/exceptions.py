"""Custom exceptions for configuration validation."""


class ConfigurationError(Exception):
    """Raised when configuration validation finds critical issues.

    This exception is raised by :meth:`Config.validate` and by the engine
    before any path is simulated, when the household parameters are
    internally inconsistent in ways a single field constraint cannot catch.

    Attributes:
        issues: List of specific configuration problems found.

    Examples:
        Catching and inspecting issues::

            try:
                config.validate()
            except ConfigurationError as e:
                for issue in e.issues:
                    print(f"  - {issue}")
    """

    def __init__(self, issues: list[str]) -> None:
        self.issues = issues
        bullet_list = "\n".join(f"  - {issue}" for issue in issues)
        super().__init__(
            f"Configuration has {len(issues)} critical "
            f"{'issue' if len(issues) == 1 else 'issues'}:\n{bullet_list}"
        )
