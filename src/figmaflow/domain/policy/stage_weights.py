"""Fixed share of overall progress assigned to each weighted pipeline stage."""

from types import MappingProxyType

from ..types import Stage

STAGE_WEIGHTS = MappingProxyType(
    {
        Stage.FETCHING: 0.2,
        Stage.PARSING: 0.3,
        Stage.IMAGES: 0.3,
        Stage.ANALYSIS: 0.2,
    }
)
