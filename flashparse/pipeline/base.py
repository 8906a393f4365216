"""
Pipeline base classes.

Every stage of the parse pipeline (preprocessor, extractor, result validator)
derives from ``BasePipelineComponent`` so they share naming and configuration
handling.
"""

from __future__ import annotations

from typing import Any, Optional

from flashparse.config.settings import AppConfig, settings


class BasePipelineComponent:
    """
    Base class for all pipeline components.

    Attributes
    ----------
    name : str
        Name of the pipeline component.
    description : str
        Description of what the pipeline component does.
    config : AppConfig
        Options this component reads; the global ``settings`` by default.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        name: Optional[str] = None,
        description: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        """
        Initialize the pipeline component.

        Parameters
        ----------
        config : AppConfig, optional
            Parser options. Falls back to the global ``settings``.
        name : str, optional
            Name of the component.
        description : str, optional
            Description of what the component does.
        **kwargs : dict
            Per-component option overrides applied on top of *config*.
        """
        base = config if config is not None else settings
        self.config = base.with_overrides(**kwargs) if kwargs else base
        self.name = name or self.__class__.__name__
        self.description = description or self.__doc__ or f"{self.name} pipeline component"

    def __str__(self) -> str:
        """String representation showing component name."""
        return f"{self.name}"

    def __repr__(self) -> str:
        """Detailed string representation."""
        return f"{self.__class__.__name__}(name='{self.name}')"
