"""
Guideline Document Models

Pydantic models for the records MAGICapp returns. Platform fields are kept
verbatim (extra="allow") so the assembled document reproduces the API
payloads, with `picos` and `codes` attached during aggregation. Any
`picos`/`codes` key already present in a fetched payload is dropped on
import; those levels only come from their own endpoints.
"""

from typing import List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class Code(BaseModel):
    """A code attached to a PICO (leaf record, no nested fetch)."""
    model_config = ConfigDict(extra="allow")


class Pico(BaseModel):
    """A structured clinical question (Population, Intervention, Comparison, Outcome)."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    pico_id: Union[int, str] = Field(alias="picoId")

    # Populated by aggregation
    codes: Optional[List[Code]] = None


class Guideline(BaseModel):
    """A published guideline."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    guideline_id: Union[int, str] = Field(alias="guidelineId")
    short_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("shortName", "shortname", "short_name"),
        serialization_alias="shortName",
    )

    # Populated by aggregation
    picos: Optional[List[Pico]] = None

    def to_document(self) -> dict:
        """Serialize with the platform's field names, omitting unpopulated levels."""
        exclude = {name for name in ("short_name", "picos") if getattr(self, name) is None}
        return self.model_dump(by_alias=True, exclude=exclude)
