# Copyright 2024 inuex35
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Coordinate transformation and Earth model utilities

- ECEF / geodetic / ENU / NED transforms
- Radii of curvature, normal gravity, Earth and transport rates

For attitude conversions with Numba optimization, use looseins.attitude.
"""

from .geodetic import (
    blh_to_ned_matrix,
    earth_rate_ned,
    gravity_ned,
    ned_to_blh_matrix,
    normal_gravity,
    radii_of_curvature,
    transport_rate_ned,
)
from .transforms import (
    covecef2enu,
    ecef2enu,
    ecef2enu_dcm,
    ecef2llh,
    ecef2ned,
    ecef2ned_dcm,
    enu2ecef,
    llh2ecef,
    ned2ecef,
)
