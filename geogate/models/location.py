from pydantic import AliasChoices
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import StrictStr


class LocationRecord(BaseModel):
    """Location attributes resolved for one client IP.

    Coordinates must be finite and within WGS-84 bounds; anything else is an
    unusable record and fails validation.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    country: StrictStr
    city: StrictStr
    latitude: float = Field(ge=-90, le=90, allow_inf_nan=False, validation_alias=AliasChoices("latitude", "lat"))
    longitude: float = Field(ge=-180, le=180, allow_inf_nan=False, validation_alias=AliasChoices("longitude", "lon"))
