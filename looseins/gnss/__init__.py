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
GNSS single-receiver processing

The single point estimator is imported from ``looseins.gnss.spp`` only;
``looseins.satellite`` depends on the geometry and troposphere helpers
exported here.
"""

from .combinations import compute_combinations, form_combination, if_code, restart_combination
from .geometry import geodist, pdop, satazel
from .troposphere import hopfield_model

__all__ = [
    'compute_combinations', 'form_combination', 'if_code', 'restart_combination',
    'geodist', 'pdop', 'satazel',
    'hopfield_model',
]
