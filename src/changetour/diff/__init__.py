"""Diff decomposition: hunks into semantic change units.

Public API re-exports for the diff subpackage.
"""

from changetour.core.ranges import LineRange
from changetour.diff.background import attach_background_regions
from changetour.diff.context import BuildContext, SourceReader, WorkspaceReader
from changetour.diff.grouping import group_change_units
from changetour.diff.models import (
    ChangeUnit,
    ChangeUnitGroup,
    CodeRegion,
    IntroducedDefinition,
    RelatedCall,
)
from changetour.diff.parser import parse_change_units, replay_hunk
from changetour.diff.splitter import split_change_units

__all__ = [
    "BuildContext",
    "ChangeUnit",
    "ChangeUnitGroup",
    "CodeRegion",
    "IntroducedDefinition",
    "LineRange",
    "RelatedCall",
    "SourceReader",
    "WorkspaceReader",
    "attach_background_regions",
    "group_change_units",
    "parse_change_units",
    "replay_hunk",
    "split_change_units",
]
