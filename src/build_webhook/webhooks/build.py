"""
Defaulting and validation for Build, BuildTemplate and ClusterBuildTemplate.

These callbacks enforce the minimal structural rules of build resources.
Validation messages are returned to users verbatim.
"""

import re

from ..constants import (
    DEFAULT_BUILD_TIMEOUT,
    KIND_BUILD,
    KIND_BUILD_TEMPLATE,
    KIND_CLUSTER_BUILD_TEMPLATE,
    MAXIMUM_BUILD_TIMEOUT_SECONDS,
)
from ..errors import DefaultingError, ValidationError
from ..models.build import Build, BuildTemplate, ClusterBuildTemplate
from ..models.common import GenericResource
from .patch import PatchOperation
from .registry import AdmissionContext, HandlerDescriptor, HandlerRegistry

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value: str) -> float:
    """
    Parse a Go-style duration string (``"10m"``, ``"-1h30m"``, ``"0"``) into seconds.

    Raises:
        ValueError: If the string is not a valid duration
    """
    if not value:
        raise ValueError("empty duration")
    sign = 1.0
    position = 0
    if value[0] in "+-":
        sign = -1.0 if value[0] == "-" else 1.0
        position = 1
    if value[position:] == "0":
        return 0.0
    if position == len(value):
        raise ValueError(f"invalid duration {value!r}")
    seconds = 0.0
    for match in _DURATION_PART.finditer(value):
        if match.start() != position:
            break
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    if position != len(value):
        raise ValueError(f"invalid duration {value!r}")
    return sign * seconds


def default_build(
    ctx: AdmissionContext, patches: list[PatchOperation], build: GenericResource | None
) -> None:
    """Set the default timeout of a build that has none."""
    if not isinstance(build, Build):
        return
    if "spec" not in build.model_fields_set:
        raise DefaultingError(f"build {ctx.name} has no spec to default")
    if build.spec.timeout is None:
        ctx.logger.debug(
            f"Defaulting timeout of build {ctx.name} to {DEFAULT_BUILD_TIMEOUT}"
        )
        patches.append(PatchOperation("add", "/spec/timeout", DEFAULT_BUILD_TIMEOUT))


def _validate_steps(steps: list[dict] | None) -> None:
    for index, step in enumerate(steps or []):
        if not step.get("image"):
            raise ValidationError(
                f"step {index} is missing an image", field="spec.steps"
            )


def validate_build(
    ctx: AdmissionContext,
    patches: list[PatchOperation],
    old: GenericResource | None,
    new: GenericResource | None,
) -> None:
    """
    Validate a Build.

    A build runs either inline steps or a template, never both. Every step
    names its image, a template reference names the template, and the
    timeout is a positive duration of at most 24 hours.
    """
    if not isinstance(new, Build):
        return
    spec = new.spec

    if spec.steps and spec.template is not None:
        raise ValidationError("build cannot specify both steps and a template")
    if not spec.steps and spec.template is None:
        raise ValidationError("build must specify either steps or a template")

    _validate_steps(spec.steps)

    if spec.template is not None and not spec.template.name:
        raise ValidationError(
            "template reference is missing a name", field="spec.template.name"
        )

    if spec.timeout is not None:
        try:
            timeout = parse_duration(spec.timeout)
        except ValueError:
            raise ValidationError(
                f"invalid timeout {spec.timeout!r}", field="spec.timeout"
            ) from None
        if timeout <= 0:
            raise ValidationError("timeout must be positive", field="spec.timeout")
        if timeout > MAXIMUM_BUILD_TIMEOUT_SECONDS:
            raise ValidationError("timeout must not exceed 24h", field="spec.timeout")


def validate_build_template(
    ctx: AdmissionContext,
    patches: list[PatchOperation],
    old: GenericResource | None,
    new: GenericResource | None,
) -> None:
    """
    Validate a BuildTemplate or ClusterBuildTemplate.

    Templates declare at least one step, and step and parameter names are
    unique.
    """
    if not isinstance(new, BuildTemplate | ClusterBuildTemplate):
        return
    spec = new.spec

    if not spec.steps:
        raise ValidationError(
            "template must specify at least one step", field="spec.steps"
        )
    _validate_steps(spec.steps)

    step_names: set[str] = set()
    for step in spec.steps:
        name = step.get("name")
        if not name:
            continue
        if name in step_names:
            raise ValidationError(f'duplicate step name "{name}"', field="spec.steps")
        step_names.add(name)

    parameter_names: set[str] = set()
    for parameter in spec.parameters or []:
        if parameter.name in parameter_names:
            raise ValidationError(
                f'duplicate parameter name "{parameter.name}"', field="spec.parameters"
            )
        parameter_names.add(parameter.name)


def build_handlers() -> HandlerRegistry:
    """Create the handler table for the build API group."""
    return HandlerRegistry(
        [
            HandlerDescriptor(
                kind=KIND_BUILD,
                factory=Build,
                defaulter=default_build,
                validator=validate_build,
            ),
            HandlerDescriptor(
                kind=KIND_BUILD_TEMPLATE,
                factory=BuildTemplate,
                validator=validate_build_template,
            ),
            HandlerDescriptor(
                kind=KIND_CLUSTER_BUILD_TEMPLATE,
                factory=ClusterBuildTemplate,
                validator=validate_build_template,
            ),
        ]
    )
