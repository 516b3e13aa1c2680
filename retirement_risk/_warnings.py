"""Custom warning classes for the retirement_risk package.

These warning classes allow users to programmatically filter, suppress,
or capture warnings using Python's standard ``warnings`` module.

Example:
    Suppress configuration warnings in a batch run::

        import warnings
        from retirement_risk._warnings import ConfigurationWarning

        warnings.filterwarnings("ignore", category=ConfigurationWarning)

    Capture clamped market inputs during a simulation::

        with warnings.catch_warnings(record=True) as w:
            warnings.simplefilter("always", DataQualityWarning)
            # ... run simulation ...
            clamped = [x for x in w if issubclass(x.category, DataQualityWarning)]
"""


class RetirementRiskWarning(UserWarning):
    """Base class for all retirement_risk warnings."""


class ConfigurationWarning(RetirementRiskWarning):
    """Unusual but accepted household or model parameters.

    Raised during config validation when values fall outside typical
    ranges (e.g., a withdrawal rate above 10% or a life-expectancy
    ceiling beyond the mortality table).
    """


class DataQualityWarning(RetirementRiskWarning):
    """Runtime data-quality observations.

    Raised when the simulation clamps an input or an intermediate value,
    such as a volatility outside ``[0, 1]`` or an extreme return draw.
    """
