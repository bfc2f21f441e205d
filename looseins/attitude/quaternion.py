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
Attitude conversion from quaternions.

Quaternions are scalar-first [w, x, y, z] and describe the body-to-navigation
rotation, so ``quat2dcm(q)`` returns C_b^n. Euler angles are 'roll-pitch-yaw'
with the 'ZYX' rotation order. Every quaternion leaving this module through
``quat_normalize`` has unit norm and a non-negative scalar part.

References:
    Principles of GNSS, Inertial, and Multisensor Integrated Navigation Systems
    - (2013) Paul D. Groves
"""

import numpy as np
from numba import njit


@njit(cache=True, fastmath=True)
def quat2euler(q):
    """
    Convert quaternion to corresponding euler angles (roll-pitch-yaw).

    Parameters
    ----------
    q : array_like, shape (4,)
        Quaternion [w, x, y, z]

    Returns
    -------
    e : ndarray, shape (3,)
        RPY euler angles [roll, pitch, yaw] in radians
    """
    w, x, y, z = q
    sp = -2*(-w*y + x*z)
    if sp > 1.0:
        sp = 1.0
    elif sp < -1.0:
        sp = -1.0
    e = np.array([np.arctan2(2*(w*x + y*z), (w*w - x*x - y*y + z*z)),
                  np.arcsin(sp),
                  np.arctan2(2*(w*z + x*y), (w*w + x*x - y*y - z*z))],
                 dtype=np.double)
    return e


@njit(cache=True, fastmath=True)
def quat2dcm(q):
    """
    Convert quaternion to the corresponding body-to-navigation DCM.

    Parameters
    ----------
    q : array_like, shape (4,)
        Quaternion [w, x, y, z]

    Returns
    -------
    C : ndarray, shape (3, 3)
        Direction cosine matrix C_b^n
    """
    w, x, y, z = q
    C = np.array([[w*w + x*x - y*y - z*z,         2*(x*y - w*z),          2*(w*y + x*z)],
                  [        2*(w*z + x*y), w*w - x*x + y*y - z*z,          2*(y*z - w*x)],
                  [        2*(x*z - w*y),         2*(y*z + w*x),  w*w - x*x - y*y + z*z]],
                 dtype=np.double)
    return C


@njit(cache=True, fastmath=True)
def quat_multiply(p, q):
    """
    Hamilton product p * q.

    For rotations, ``quat_multiply(q_ab, q_bc)`` gives q_ac.
    """
    pw, px, py, pz = p
    qw, qx, qy, qz = q
    r = np.array([pw*qw - px*qx - py*qy - pz*qz,
                  pw*qx + px*qw + py*qz - pz*qy,
                  pw*qy - px*qz + py*qw + pz*qx,
                  pw*qz + px*qy - py*qx + pz*qw],
                 dtype=np.double)
    return r


@njit(cache=True, fastmath=True)
def quat_conjugate(q):
    """Conjugate (inverse rotation for unit quaternions)."""
    return np.array([q[0], -q[1], -q[2], -q[3]], dtype=np.double)


@njit(cache=True, fastmath=True)
def quat_normalize(q):
    """
    Normalize to unit length with a non-negative scalar part.

    q and -q describe the same rotation; fixing the sign keeps the
    representation unique between successive products.
    """
    n = np.sqrt(q[0]*q[0] + q[1]*q[1] + q[2]*q[2] + q[3]*q[3])
    r = np.empty(4, dtype=np.double)
    s = 1.0 / n
    if q[0] < 0.0:
        s = -s
    for i in range(4):
        r[i] = q[i] * s
    return r


@njit(cache=True, fastmath=True)
def quat2rotvec(q):
    """
    Convert quaternion to rotation vector (axis times angle).

    Parameters
    ----------
    q : array_like, shape (4,)
        Quaternion [w, x, y, z]

    Returns
    -------
    phi : ndarray, shape (3,)
        Rotation vector in radians, angle within [0, π]
    """
    qn = quat_normalize(q)
    v = qn[1:]
    vn = np.sqrt(v[0]*v[0] + v[1]*v[1] + v[2]*v[2])
    if vn < 1e-12:
        return 2.0 * v
    angle = 2.0 * np.arctan2(vn, qn[0])
    return v * (angle / vn)
