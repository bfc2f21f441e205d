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
Attitude module for rotations.

Converts between euler angles (roll-pitch-yaw), body-to-navigation
direction cosine matrices, quaternions [w, x, y, z] and rotation vectors.
All kernels are compiled with Numba.

References:
    Principles of GNSS, Inertial, and Multisensor Integrated Navigation Systems
    - (2013) Paul D. Groves
"""

from .dcm import dcm2euler, dcm2quat
from .euler import euler2dcm, euler2quat
from .quaternion import (
    quat2dcm, quat2euler, quat2rotvec, quat_conjugate, quat_multiply, quat_normalize
)
from .rotvec import dcm2rotvec, rotvec2dcm, rotvec2quat
from .skew import cross3, deskew, skew

__all__ = [
    'skew', 'deskew', 'cross3',
    'dcm2euler', 'dcm2quat',
    'euler2dcm', 'euler2quat',
    'quat2euler', 'quat2dcm', 'quat2rotvec',
    'quat_multiply', 'quat_conjugate', 'quat_normalize',
    'rotvec2quat', 'rotvec2dcm', 'dcm2rotvec',
]
