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
Strapdown inertial mechanization in the NED frame

Attitude, velocity and position are propagated from gyroscope and
accelerometer increments with single-sample coning and sculling
compensation.

References:
    E.-H. Shin, Estimation techniques for low-cost inertial navigation,
    UCGE Report 20219, University of Calgary, 2005
"""

import logging
from collections import deque
from typing import Optional, Tuple

import numpy as np

from ..attitude import cross3, quat_conjugate, quat_multiply, quat_normalize, rotvec2quat, skew
from ..coordinate.geodetic import (
    earth_rate_ned, gravity_ned, radii_of_curvature, transport_rate_ned
)
from ..sensors.imu import ImuSample
from .state import NavigationState

logger = logging.getLogger(__name__)

MIN_DT = 1e-9  # seconds; shorter intervals are treated as degenerate


def _extrapolate(prev: np.ndarray, prev2: np.ndarray) -> np.ndarray:
    """Value at the middle of the current interval from the two previous epochs"""
    return prev + 0.5 * (prev - prev2)


class SinsMechanizer:
    """
    Strapdown INS propagation driven by one IMU sample at a time

    The mechanizer keeps the states of epochs k, k-1 and k-2 in a ring
    buffer for the midpoint extrapolation, plus the previous IMU sample for
    the coning and sculling terms.

    Parameters
    ----------
    initial : NavigationState
        Aligned initial state
    """

    HISTORY_LENGTH = 3

    def __init__(self, initial: NavigationState):
        self.history = deque([initial] * self.HISTORY_LENGTH, maxlen=self.HISTORY_LENGTH)
        self.previous_sample: Optional[ImuSample] = None
        self.dt = 0.0

    @property
    def state(self) -> NavigationState:
        """Current navigation state (epoch k)"""
        return self.history[-1]

    @property
    def states(self) -> Tuple[NavigationState, ...]:
        """States of epochs k, k-1 and k-2, newest first"""
        return tuple(reversed(self.history))

    def reset(self, state: NavigationState):
        """
        Install a corrected state, e.g. from the filter feedback

        The correction is applied to every retained epoch so that the
        midpoint extrapolation of the next step sees a consistent history.
        """
        current = self.history[-1]
        dq = quat_multiply(state.quaternion, quat_conjugate(current.quaternion))
        dv = state.velocity - current.velocity
        dblh = state.blh - current.blh
        older = [NavigationState(s.time, quat_multiply(dq, s.quaternion), s.velocity + dv, s.blh + dblh)
                 for s in list(self.history)[:-1]]
        self.history.extend(older + [state])

    def mechanize(self, sample: ImuSample) -> NavigationState:
        """
        Propagate the navigation state with one IMU sample

        Parameters:
        -----------
        sample : ImuSample
            Angle and velocity increments ending at ``sample.time``

        Returns:
        --------
        NavigationState
            State at ``sample.time``. The first sample only initializes the
            history; a non-positive interval returns the current state.
        """
        if self.previous_sample is None:
            state = self.state.with_time(sample.time)
            self.history.extend([state] * self.HISTORY_LENGTH)
            self.previous_sample = sample
            self.dt = 0.0
            return state

        dt = sample.time - self.previous_sample.time
        if dt <= MIN_DT:
            logger.warning(f"Non-positive IMU interval {dt:.3e} s at {sample.time:.3f}, sample skipped")
            self.dt = 0.0
            return self.state

        prev = self.history[-1]
        prev2 = self.history[-2]
        prev_sample = self.previous_sample

        # Earth quantities at the middle of the interval
        w_ie = _extrapolate(earth_rate_ned(prev.blh[0]), earth_rate_ned(prev2.blh[0]))
        w_en = _extrapolate(transport_rate_ned(prev.blh, prev.velocity),
                            transport_rate_ned(prev2.blh, prev2.velocity))
        g = _extrapolate(gravity_ned(prev.blh), gravity_ned(prev2.blh))
        v_mid = _extrapolate(prev.velocity, prev2.velocity)
        zeta = (w_ie + w_en) * dt

        quaternion = self._attitude_update(prev, sample, prev_sample, zeta)
        velocity = self._velocity_update(prev, sample, prev_sample, zeta, g, w_ie, w_en, v_mid, dt)
        blh = self._position_update(prev, velocity, dt)

        state = NavigationState(sample.time, quaternion, velocity, blh)
        self.history.append(state)
        self.previous_sample = sample
        self.dt = dt
        return state

    @staticmethod
    def _attitude_update(prev: NavigationState, sample: ImuSample, prev_sample: ImuSample,
                         zeta: np.ndarray) -> np.ndarray:
        # body frame change with second-order coning correction
        phi = sample.dtheta + cross3(prev_sample.dtheta, sample.dtheta) / 12.0
        q_body = rotvec2quat(phi)
        # navigation frame change from n(k-1) to n(k)
        q_nav = rotvec2quat(-zeta)
        q = quat_multiply(quat_multiply(q_nav, prev.quaternion), q_body)
        return quat_normalize(q)

    @staticmethod
    def _velocity_update(prev: NavigationState, sample: ImuSample, prev_sample: ImuSample,
                         zeta: np.ndarray, g: np.ndarray, w_ie: np.ndarray, w_en: np.ndarray,
                         v_mid: np.ndarray, dt: float) -> np.ndarray:
        dv, dth = sample.dvel, sample.dtheta
        dv_body = (dv + 0.5 * cross3(dth, dv)
                   + (cross3(prev_sample.dtheta, dv) + cross3(prev_sample.dvel, dth)) / 12.0)
        dv_f = (np.eye(3) - 0.5 * skew(zeta)) @ prev.dcm @ dv_body
        dv_g = (g - cross3(2.0 * w_ie + w_en, v_mid)) * dt
        return prev.velocity + dv_f + dv_g

    @staticmethod
    def _position_update(prev: NavigationState, velocity: np.ndarray, dt: float) -> np.ndarray:
        lat, lon, h = prev.blh
        v_avg = 0.5 * (prev.velocity + velocity)

        h_new = h - v_avg[2] * dt
        h_mid = 0.5 * (h + h_new)

        rm, _ = radii_of_curvature(lat)
        lat_new = lat + v_avg[0] / (rm + h_mid) * dt
        lat_mid = 0.5 * (lat + lat_new)

        _, rn = radii_of_curvature(lat_mid)
        lon_new = lon + v_avg[1] / ((rn + h_mid) * np.cos(lat_mid)) * dt
        return np.array([lat_new, lon_new, h_new])
