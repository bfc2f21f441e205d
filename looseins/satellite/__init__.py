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

"""
Satellite computation module.

ephemeris : module
    Fixed-capacity ephemeris table and validity checks
satellite_position : module
    Position, velocity and clock from broadcast ephemeris (GPS, BeiDou incl. GEO)
"""

from .ephemeris import (
    EphemerisTable, ephemeris_age, is_ephemeris_valid, max_ephemeris_age, satellite_time
)
from .satellite_position import (
    SatellitePositionEngine, compute_satellite_state, eph2clk, eph2pos
)
