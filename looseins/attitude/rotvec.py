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
Attitude conversion from rotation vectors.

A rotation vector phi has the rotation axis as direction and the rotation
angle (rad) as magnitude. Small angles use the series expansions to avoid
0/0 in sin(a)/a.

References:
    Principles of GNSS, Inertial, and Multisensor Integrated Navigation Systems
    - (2013) Paul D. Groves
"""

import numpy as np
from numba import njit

from .dcm import dcm2quat
from .quaternion import quat2rotvec
from .skew import skew


@njit(cache=True, fastmath=True)
def rotvec2quat(phi):
    """
    Convert rotation vector to the equivalent quaternion.

    Parameters
    ----------
    phi : array_like, shape (3,)
        Rotation vector in radians

    Returns
    -------
    q : ndarray, shape (4,)
        Quaternion [w, x, y, z] with non-negative scalar for |phi| <= π
    """
    a2 = phi[0]*phi[0] + phi[1]*phi[1] + phi[2]*phi[2]
    a = np.sqrt(a2)
    if a < 1e-8:
        w = 1.0 - a2 / 8.0
        f = 0.5 - a2 / 48.0
    else:
        w = np.cos(0.5 * a)
        f = np.sin(0.5 * a) / a
    q = np.array([w, f*phi[0], f*phi[1], f*phi[2]], dtype=np.double)
    return q


@njit(cache=True, fastmath=True)
def rotvec2dcm(phi):
    """
    Convert rotation vector to DCM with the Rodrigues formula.

    C = I + sin(a)/a [phi x] + (1 - cos(a))/a^2 [phi x]^2
    """
    a2 = phi[0]*phi[0] + phi[1]*phi[1] + phi[2]*phi[2]
    a = np.sqrt(a2)
    if a < 1e-8:
        f1 = 1.0 - a2 / 6.0
        f2 = 0.5 - a2 / 24.0
    else:
        f1 = np.sin(a) / a
        f2 = (1.0 - np.cos(a)) / a2
    S = skew(phi)
    return np.eye(3) + f1 * S + f2 * (S @ S)


@njit(cache=True, fastmath=True)
def dcm2rotvec(C):
    """Convert DCM to rotation vector."""
    return quat2rotvec(dcm2quat(C))
