"""Propagation of producer stack outputs into dependent stack parameters."""

from .errors import EmptyOutputError
from .models import OutputBinding, ParameterEntry


def bind(output: OutputBinding, target_parameter_key: str) -> ParameterEntry:
    """Turn a producer output into a parameter for the dependent stack."""
    if not output.value or not output.value.strip():
        raise EmptyOutputError(
            f"Output {output.key} of stack {output.source_stack_name} is empty"
        )
    return ParameterEntry(key=target_parameter_key, value=output.value)
