"""Configuration schema and validation for experiment files."""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Mapping

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)

from .distributions import (
    BaseDistribution,
    CategoricalDistribution,
    IntUniformDistribution,
    LogUniformDistribution,
    UniformDistribution,
)


def _non_blank(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must be a non-empty string")
    return value


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid")


class MetadataConfig(_Section):
    name: str
    description: str

    check_text = field_validator("name", "description")(_non_blank)


class SearchConfig(_Section):
    sampler: Literal["random"] = "random"
    n_trials: int = Field(gt=0)
    metric: str

    check_metric = field_validator("metric")(_non_blank)

    @field_validator("sampler", mode="before")
    @classmethod
    def normalise_sampler(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value


class StoppingConfig(_Section):
    max_trials: int | None = Field(default=None, gt=0)
    max_time_minutes: float | None = Field(default=None, gt=0)


class ReportConfig(_Section):
    output_dir: str = "reports"
    filename: str | None = None
    metrics: List[str] = Field(min_length=1)

    check_output_dir = field_validator("output_dir")(_non_blank)

    @field_validator("filename")
    @classmethod
    def check_filename(cls, value: str | None) -> str | None:
        return None if value is None else _non_blank(value)

    @field_validator("metrics")
    @classmethod
    def unique_metrics(cls, metrics: List[str]) -> List[str]:
        names = [_non_blank(metric) for metric in metrics]
        if len({name.lower() for name in names}) != len(names):
            raise ValueError("metric names must be unique (case-insensitive)")
        return names


class ArtifactsConfig(_Section):
    log_file: str = "runs/log.csv"

    check_log_file = field_validator("log_file")(_non_blank)


class EvaluatorConfig(BaseModel):
    # Extra keys are options handed to evaluator factories.
    model_config = ConfigDict(extra="allow")

    module: str
    callable: str

    check_target = field_validator("module", "callable")(_non_blank)


class _Param(_Section):
    @model_validator(mode="after")
    def check_bounds(self) -> "_Param":
        # Distributions own the bound rules; building one surfaces them as validation errors.
        self.to_distribution()
        return self

    def to_distribution(self) -> BaseDistribution:
        raise NotImplementedError


class FloatParam(_Param):
    type: Literal["float"]
    low: float
    high: float
    log: bool = False

    def to_distribution(self) -> BaseDistribution:
        if self.log:
            return LogUniformDistribution(low=self.low, high=self.high)
        return UniformDistribution(low=self.low, high=self.high)


class IntParam(_Param):
    type: Literal["int"]
    low: int
    high: int

    def to_distribution(self) -> BaseDistribution:
        return IntUniformDistribution(low=self.low, high=self.high)


class CategoricalParam(_Param):
    type: Literal["categorical"]
    choices: List[str] = Field(min_length=1)

    def to_distribution(self) -> BaseDistribution:
        return CategoricalDistribution(choices=tuple(self.choices))


SearchSpaceEntry = Annotated[
    FloatParam | IntParam | CategoricalParam,
    Field(discriminator="type"),
]
_SEARCH_SPACE_ADAPTER = TypeAdapter(Dict[str, SearchSpaceEntry])


class OptimizationConfig(_Section):
    metadata: MetadataConfig
    seed: int | None = None
    search: SearchConfig
    stopping: StoppingConfig | None = None
    search_space: Dict[str, SearchSpaceEntry] = Field(min_length=1)
    evaluator: EvaluatorConfig
    report: ReportConfig
    artifacts: ArtifactsConfig | None = None

    @field_validator("search_space")
    @classmethod
    def named_parameters(cls, space: Dict[str, Any]) -> Dict[str, Any]:
        for name in space:
            _non_blank(name)
        return space

    @model_validator(mode="after")
    def metric_is_reported(self) -> "OptimizationConfig":
        if self.search.metric.lower() not in {metric.lower() for metric in self.report.metrics}:
            raise ValueError("search.metric must be included in report.metrics")
        return self

    def build_search_space(self) -> Dict[str, BaseDistribution]:
        """Return the search space as parameter name to distribution."""
        return {name: entry.to_distribution() for name, entry in self.search_space.items()}


def build_search_space(space: Mapping[str, Mapping[str, Any]]) -> Dict[str, BaseDistribution]:
    """Validate a plain search-space mapping and build its distributions."""
    entries = _SEARCH_SPACE_ADAPTER.validate_python(dict(space))
    return {name: entry.to_distribution() for name, entry in entries.items()}


__all__ = [
    "OptimizationConfig",
    "SearchSpaceEntry",
    "ValidationError",
    "build_search_space",
]
