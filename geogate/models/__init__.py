from geogate.models.decision import Allow
from geogate.models.decision import Decision
from geogate.models.decision import Deny
from geogate.models.decision import Error
from geogate.models.location import LocationRecord
from geogate.models.policy import Coordinate
from geogate.models.policy import Geofence
from geogate.models.policy import Policy
