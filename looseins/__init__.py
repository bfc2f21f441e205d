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
looseins - Loosely-coupled GNSS RTK / INS Processing Library

Satellite positions from broadcast ephemeris, single point positioning,
cycle-slip screening, double differencing with integer ambiguity
resolution, strapdown mechanization and a 21-state error Kalman filter
fed by RTK positions.
"""

__version__ = "1.0.0"
__author__ = "PyINS Development Team"
__title__ = "looseins"
__description__ = "Loosely-coupled GNSS RTK/INS processing library"

from .core import *
from .coordinate import *
from .attitude import *
