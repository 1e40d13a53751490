"""PatternKit scaffolder -- renders source files from cached templates.

Quick usage::

    from patternkit.scaffolder import Generator, GenerationRequest, TemplateCache

    cache = TemplateCache()
    generator = Generator(cache, output_root="out")
    result = await generator.generate([
        GenerationRequest.build("forms", "form", form_model, "UserForm.tsx"),
    ])
"""

from .generator import Generator
from .models import (
    DomainModel,
    FormModel,
    GenerationError,
    GenerationRequest,
    GenerationResult,
    NavigationModel,
    ServiceModel,
    TemplateRef,
    form_model_from_catalog,
    navigation_model_from_catalog,
    parse_field_list,
)
from .templates import TemplateCache, TemplateDescriptor

__all__ = [
    "DomainModel",
    "FormModel",
    "GenerationError",
    "GenerationRequest",
    "GenerationResult",
    "Generator",
    "NavigationModel",
    "ServiceModel",
    "TemplateCache",
    "TemplateDescriptor",
    "TemplateRef",
    "form_model_from_catalog",
    "navigation_model_from_catalog",
    "parse_field_list",
]
