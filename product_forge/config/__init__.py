"""Load and validate product project trees for builds.

This subpackage parses a project's ``config.yaml`` and section directories
(install code, plugins, templates, phrases, options, tasks, navigation) into
strongly typed dataclasses (:class:`Project` and friends) that the builder
consumes. The primary entry point is :func:`load_project`, which applies
defaults and returns a :class:`Project` ready for assembly.

Examples
--------
>>> from pathlib import Path
>>> from product_forge.config import load_project
>>> project = load_project(Path("projects/demo"))  # doctest: +SKIP
>>> project.meta.title  # doctest: +SKIP
'Demo Product'
"""

from .loader import load_project, load_projects
from .models import (
    CodeVersion,
    Dependency,
    NavigationLink,
    NavigationTab,
    Option,
    OptionGroup,
    PhraseGroup,
    Plugin,
    Project,
    ProjectMeta,
    SectionKind,
    Task,
    Template,
)

__all__ = [
    "CodeVersion",
    "Dependency",
    "NavigationLink",
    "NavigationTab",
    "Option",
    "OptionGroup",
    "PhraseGroup",
    "Plugin",
    "Project",
    "ProjectMeta",
    "SectionKind",
    "Task",
    "Template",
    "load_project",
    "load_projects",
]
