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
Attitude conversion from direction cosine matrices.

DCMs are body-to-navigation (C_b^n) and euler angles 'roll-pitch-yaw'
with the 'ZYX' rotation order.

References:
    Principles of GNSS, Inertial, and Multisensor Integrated Navigation Systems
    - (2013) Paul D. Groves
"""

import numpy as np
from numba import njit

from .quaternion import quat_normalize


@njit(cache=True, fastmath=True)
def dcm2euler(C):
    """
    Convert DCM C_b^n into euler angles (roll-pitch-yaw).

    Parameters
    ----------
    C : array_like, shape (3, 3)
        Direction cosine matrix C_b^n

    Returns
    -------
    e : ndarray, shape (3,)
        Euler angles [roll, pitch, yaw] in radians
    """
    e = np.array([np.arctan2(C[2,1], C[2,2]),
                  np.arctan2(-C[2,0], np.sqrt(C[2,1]*C[2,1] + C[2,2]*C[2,2])),
                  np.arctan2(C[1,0], C[0,0])],
                 dtype=np.double)
    return e


@njit(cache=True, fastmath=True)
def dcm2quat(C):
    """
    Convert DCM into the corresponding quaternion.

    Uses the branch with the largest pivot (Shepperd) so the result stays
    accurate for every rotation angle.

    Parameters
    ----------
    C : array_like, shape (3, 3)
        Direction cosine matrix C_b^n

    Returns
    -------
    q : ndarray, shape (4,)
        Quaternion [w, x, y, z], unit norm, w >= 0
    """
    tr = C[0,0] + C[1,1] + C[2,2]
    if tr > 0.0:
        s = 2.0 * np.sqrt(1.0 + tr)
        q = np.array([0.25*s,
                      (C[2,1] - C[1,2]) / s,
                      (C[0,2] - C[2,0]) / s,
                      (C[1,0] - C[0,1]) / s], dtype=np.double)
    elif C[0,0] > C[1,1] and C[0,0] > C[2,2]:
        s = 2.0 * np.sqrt(1.0 + C[0,0] - C[1,1] - C[2,2])
        q = np.array([(C[2,1] - C[1,2]) / s,
                      0.25*s,
                      (C[0,1] + C[1,0]) / s,
                      (C[0,2] + C[2,0]) / s], dtype=np.double)
    elif C[1,1] > C[2,2]:
        s = 2.0 * np.sqrt(1.0 + C[1,1] - C[0,0] - C[2,2])
        q = np.array([(C[0,2] - C[2,0]) / s,
                      (C[0,1] + C[1,0]) / s,
                      0.25*s,
                      (C[1,2] + C[2,1]) / s], dtype=np.double)
    else:
        s = 2.0 * np.sqrt(1.0 + C[2,2] - C[0,0] - C[1,1])
        q = np.array([(C[1,0] - C[0,1]) / s,
                      (C[0,2] + C[2,0]) / s,
                      (C[1,2] + C[2,1]) / s,
                      0.25*s], dtype=np.double)
    return quat_normalize(q)
