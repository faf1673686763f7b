class ContractViolation(ValueError):
    """A caller broke a precondition of the rendering core."""
