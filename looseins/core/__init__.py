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

"""Core GNSS/INS Module.

- **Constants**: physical and WGS84 parameters, GPS/BeiDou frequencies,
  table capacities and solution status codes
- **Data Structures**: observations, ephemerides, satellite states,
  combinations and positioning results
- **Time Systems**: GPS/BeiDou week-seconds, civil time and MJD
- **Linear algebra**: singular-safe inversion used by the estimators
"""

from .constants import *
from .data_structures import *
from .linalg import invert, weighted_least_squares
from .time import *
