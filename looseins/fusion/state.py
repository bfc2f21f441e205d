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

"""Navigation state snapshots for INS/GNSS fusion"""

from dataclasses import dataclass, replace

import numpy as np

from ..attitude import dcm2quat, euler2quat, quat2dcm, quat2euler, quat_normalize
from ..coordinate.transforms import llh2ecef

# Error-state layout of the loosely coupled filter
NSTATE = 21
IDX_POS = slice(0, 3)     # position error, NED (m)
IDX_VEL = slice(3, 6)     # velocity error, NED (m/s)
IDX_ATT = slice(6, 9)     # attitude error (rad)
IDX_BG = slice(9, 12)     # gyro bias (rad/s)
IDX_BA = slice(12, 15)    # accelerometer bias (m/s^2)
IDX_SG = slice(15, 18)    # gyro scale factor (-)
IDX_SA = slice(18, 21)    # accelerometer scale factor (-)


@dataclass(frozen=True, eq=False)
class NavigationState:
    """
    Immutable navigation solution at one IMU epoch

    The quaternion (body to NED) is canonical; the DCM, Euler angles and
    ECEF position are derived on access. The quaternion is normalized with
    a non-negative scalar part on construction.

    Attributes
    ----------
    time : float
        Time tag (s)
    quaternion : np.ndarray
        Attitude quaternion [w, x, y, z], body to navigation frame
    velocity : np.ndarray
        Velocity in the NED frame (m/s)
    blh : np.ndarray
        Latitude, longitude (rad) and ellipsoidal height (m)
    """
    time: float
    quaternion: np.ndarray
    velocity: np.ndarray
    blh: np.ndarray

    def __post_init__(self):
        q = np.asarray(self.quaternion, dtype=float).reshape(-1)
        if q.shape != (4,) or not np.all(np.isfinite(q)) or np.linalg.norm(q) == 0.0:
            raise ValueError(f"Invalid attitude quaternion {q}")
        object.__setattr__(self, 'time', float(self.time))
        object.__setattr__(self, 'quaternion', quat_normalize(q))
        object.__setattr__(self, 'velocity', np.asarray(self.velocity, dtype=float).reshape(3))
        object.__setattr__(self, 'blh', np.asarray(self.blh, dtype=float).reshape(3))

    @classmethod
    def from_euler(cls, time: float, euler: np.ndarray, velocity: np.ndarray,
                   blh: np.ndarray) -> 'NavigationState':
        """State from roll, pitch, yaw (rad)"""
        return cls(time, euler2quat(np.asarray(euler, dtype=float)), velocity, blh)

    @classmethod
    def from_dcm(cls, time: float, C: np.ndarray, velocity: np.ndarray,
                 blh: np.ndarray) -> 'NavigationState':
        return cls(time, dcm2quat(np.asarray(C, dtype=float)), velocity, blh)

    @property
    def dcm(self) -> np.ndarray:
        """Body to NED direction cosine matrix C_b^n"""
        return quat2dcm(self.quaternion)

    @property
    def euler(self) -> np.ndarray:
        """Roll, pitch, yaw (rad)"""
        return quat2euler(self.quaternion)

    @property
    def xyz(self) -> np.ndarray:
        """ECEF position (m)"""
        return llh2ecef(self.blh)

    def with_time(self, time: float) -> 'NavigationState':
        return replace(self, time=time)

    def __repr__(self):
        lat, lon, h = self.blh
        return (f"NavigationState(t={self.time:.3f}, lat={np.rad2deg(lat):.8f}, "
                f"lon={np.rad2deg(lon):.8f}, h={h:.3f}, vel={np.round(self.velocity, 4)}, "
                f"euler={np.round(np.rad2deg(self.euler), 4)})")
