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

"""RTK (Real-Time Kinematic) processing module"""

from .ambiguity_resolution import (
    LD, AmbiguityResolver, bootstrap_success_rate, mlambda, ratio_test, reduction, search
)
from .cycle_slip import CycleSlipDetector, OutlierDetector
from .double_difference import DoubleDifferenceEngine, single_differences
from .rtk_processor import RtkProcessor

__all__ = [
    'LD', 'reduction', 'search', 'mlambda', 'ratio_test', 'bootstrap_success_rate',
    'AmbiguityResolver',
    'CycleSlipDetector', 'OutlierDetector',
    'DoubleDifferenceEngine', 'single_differences',
    'RtkProcessor',
]
