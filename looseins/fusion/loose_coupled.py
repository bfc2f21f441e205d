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

"""Loosely coupled INS/RTK integration with a 21-state error-state EKF"""

import logging
from typing import Optional, Tuple

import numpy as np

from ..attitude import quat_multiply, quat_normalize, rotvec2quat, skew
from ..coordinate.geodetic import (
    blh_to_ned_matrix, earth_rate_ned, ned_to_blh_matrix, normal_gravity,
    radii_of_curvature, transport_rate_ned
)
from ..coordinate.transforms import ecef2llh
from ..core.constants import D2R, SOLQ_FIX, SOLQ_FLOAT, WIE
from ..core.data_structures import RtkSolution
from ..core.linalg import invert
from ..sensors.imu import ImuNoise, ImuSample
from .mechanization import SinsMechanizer
from .state import (
    IDX_ATT, IDX_BA, IDX_BG, IDX_POS, IDX_SA, IDX_SG, IDX_VEL, NSTATE, NavigationState
)

logger = logging.getLogger(__name__)

NNOISE = 18

# Measurement standard deviations (N, E, D in m) per solution quality
DEFAULT_POSITION_STD = {
    SOLQ_FIX: np.array([0.02, 0.02, 0.05]),
    SOLQ_FLOAT: np.array([0.3, 0.3, 0.6]),
}


class LooseCoupledFilter:
    """
    Error-state Kalman filter of position, velocity, attitude and IMU errors

    The error state is [dr, dv, phi, bg, ba, sg, sa]: position error (NED,
    m), velocity error (NED, m/s), attitude error (rad), gyro and
    accelerometer biases, and gyro and accelerometer scale factors. Errors
    are defined as INS minus truth. After every update the error state is
    fed back and reset to zero, so the filter only propagates P between
    updates.

    Parameters
    ----------
    noise : ImuNoise
        IMU stochastic model, lever arm included
    initial_std : np.ndarray, optional
        Standard deviations of the 21 states at start
    """

    def __init__(self, noise: ImuNoise, initial_std: Optional[np.ndarray] = None):
        self.noise = noise
        self.x = np.zeros(NSTATE)
        if initial_std is None:
            initial_std = np.concatenate([
                np.full(3, 1.0),
                np.full(3, 0.1),
                np.array([0.5, 0.5, 1.0]) * D2R,
                np.full(3, noise.gyro_bias_std),
                np.full(3, noise.acc_bias_std),
                np.full(3, noise.gyro_scale_std),
                np.full(3, noise.acc_scale_std),
            ])
        initial_std = np.asarray(initial_std, dtype=float)
        if initial_std.shape != (NSTATE,):
            raise ValueError(f"initial_std must have {NSTATE} elements")
        self.P = np.diag(initial_std ** 2)

        # accumulated IMU errors
        self.gyro_bias = np.zeros(3)
        self.acc_bias = np.zeros(3)
        self.gyro_scale = np.zeros(3)
        self.acc_scale = np.zeros(3)

    def compensate(self, sample: ImuSample, dt: float) -> ImuSample:
        """Remove the estimated biases and scale factors from a raw sample"""
        return sample.compensated(self.gyro_bias, self.acc_bias,
                                  self.gyro_scale, self.acc_scale, dt)

    def system_matrix(self, state: NavigationState, f_b: np.ndarray,
                      w_b: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Continuous-time system matrix F and noise input matrix G

        Parameters
        ----------
        state : NavigationState
            Current INS solution
        f_b : np.ndarray
            Compensated specific force in the body frame (m/s^2)
        w_b : np.ndarray
            Compensated angular rate in the body frame (rad/s)
        """
        lat, _, h = state.blh
        vn, ve, vd = state.velocity
        rm, rn = radii_of_curvature(lat)
        rmh, rnh = rm + h, rn + h
        sl, cl, tl = np.sin(lat), np.cos(lat), np.tan(lat)
        g = normal_gravity(lat, h)
        C = state.dcm
        w_in = earth_rate_ned(lat) + transport_rate_ned(state.blh, state.velocity)
        T = self.noise.correlation_time

        F = np.zeros((NSTATE, NSTATE))

        F[IDX_POS, IDX_POS] = np.array([
            [-vd / rmh, 0.0, vn / rmh],
            [ve * tl / rnh, -(vd + vn * tl) / rnh, ve / rnh],
            [0.0, 0.0, 0.0],
        ])
        F[IDX_POS, IDX_VEL] = np.eye(3)

        F[IDX_VEL, IDX_POS] = np.array([
            [-2.0 * ve * WIE * cl / rmh - ve ** 2 / (rmh * rnh * cl ** 2),
             0.0,
             vn * vd / rmh ** 2 - ve ** 2 * tl / rnh ** 2],
            [2.0 * WIE * (vn * cl - vd * sl) / rmh + vn * ve / (rmh * rnh * cl ** 2),
             0.0,
             (ve * vd + vn * ve * tl) / rnh ** 2],
            [2.0 * WIE * ve * sl / rmh,
             0.0,
             -ve ** 2 / rnh ** 2 - vn ** 2 / rmh ** 2 + 2.0 * g / (np.sqrt(rm * rn) + h)],
        ])
        F[IDX_VEL, IDX_VEL] = np.array([
            [vd / rmh, -2.0 * (WIE * sl + ve * tl / rnh), vn / rmh],
            [2.0 * WIE * sl + ve * tl / rnh, (vd + vn * tl) / rnh, 2.0 * WIE * cl + ve / rnh],
            [-2.0 * vn / rmh, -2.0 * (WIE * cl + ve / rnh), 0.0],
        ])
        F[IDX_VEL, IDX_ATT] = skew(C @ f_b)
        F[IDX_VEL, IDX_BA] = C
        F[IDX_VEL, IDX_SA] = C @ np.diag(f_b)

        F[IDX_ATT, IDX_POS] = np.array([
            [-WIE * sl / rmh, 0.0, ve / rnh ** 2],
            [0.0, 0.0, -vn / rmh ** 2],
            [-WIE * cl / rmh - ve / (rmh * rnh * cl ** 2), 0.0, -ve * tl / rnh ** 2],
        ])
        F[IDX_ATT, IDX_VEL] = np.array([
            [0.0, 1.0 / rnh, 0.0],
            [-1.0 / rmh, 0.0, 0.0],
            [0.0, -tl / rnh, 0.0],
        ])
        F[IDX_ATT, IDX_ATT] = -skew(w_in)
        F[IDX_ATT, IDX_BG] = -C
        F[IDX_ATT, IDX_SG] = -C @ np.diag(w_b)

        for idx in (IDX_BG, IDX_BA, IDX_SG, IDX_SA):
            F[idx, idx] = -np.eye(3) / T

        G = np.zeros((NSTATE, NNOISE))
        G[IDX_VEL, 0:3] = C
        G[IDX_ATT, 3:6] = C
        G[IDX_BG, 6:9] = np.eye(3)
        G[IDX_BA, 9:12] = np.eye(3)
        G[IDX_SG, 12:15] = np.eye(3)
        G[IDX_SA, 15:18] = np.eye(3)
        return F, G

    def noise_matrix(self) -> np.ndarray:
        """Continuous-time spectral densities of the 18 noise inputs"""
        n, T = self.noise, self.noise.correlation_time
        return np.diag(np.concatenate([
            np.full(3, n.vrw ** 2),
            np.full(3, n.arw ** 2),
            np.full(3, 2.0 * n.gyro_bias_std ** 2 / T),
            np.full(3, 2.0 * n.acc_bias_std ** 2 / T),
            np.full(3, 2.0 * n.gyro_scale_std ** 2 / T),
            np.full(3, 2.0 * n.acc_scale_std ** 2 / T),
        ]))

    def predict(self, state: NavigationState, sample: ImuSample, dt: float):
        """
        Propagate the error state and its covariance over one IMU interval

        ``sample`` must already be compensated.
        """
        if dt <= 0.0:
            return
        F, G = self.system_matrix(state, sample.dvel / dt, sample.dtheta / dt)
        Phi = np.eye(NSTATE) + F * dt
        GQG = G @ self.noise_matrix() @ G.T
        Qk = 0.5 * (Phi @ GQG + GQG @ Phi.T) * dt

        self.x = Phi @ self.x
        self.P = Phi @ self.P @ Phi.T + Qk

    def update(self, state: NavigationState, position_blh: np.ndarray,
               std_ned: np.ndarray) -> Optional[NavigationState]:
        """
        Position update with a GNSS antenna position and closed-loop feedback

        Parameters
        ----------
        state : NavigationState
            INS solution at the measurement time
        position_blh : np.ndarray
            Measured antenna latitude, longitude (rad) and height (m)
        std_ned : np.ndarray
            Measurement standard deviations (N, E, D in m)

        Returns
        -------
        NavigationState or None
            Corrected state, None when the innovation covariance is singular
        """
        C = state.dcm
        lever_n = C @ self.noise.lever_arm
        antenna_blh = state.blh + ned_to_blh_matrix(state.blh) @ lever_n
        z = blh_to_ned_matrix(state.blh) @ (antenna_blh - position_blh)

        H = np.zeros((3, NSTATE))
        H[:, IDX_POS] = np.eye(3)
        H[:, IDX_ATT] = skew(lever_n)
        R = np.diag(np.asarray(std_ned, dtype=float) ** 2)

        S = H @ self.P @ H.T + R
        S_inv, singular = invert(S)
        if singular:
            logger.warning(f"Singular innovation covariance at {state.time:.3f}, update skipped")
            return None

        K = self.P @ H.T @ S_inv
        self.x = self.x + K @ (z - H @ self.x)
        I_KH = np.eye(NSTATE) - K @ H
        self.P = I_KH @ self.P @ I_KH.T + K @ R @ K.T

        logger.debug(f"Update at {state.time:.3f}: innovation NED {np.round(z, 3)}")
        return self.feedback(state)

    def feedback(self, state: NavigationState) -> NavigationState:
        """Apply the estimated errors to the INS state and reset the error state"""
        x = self.x
        blh = state.blh - ned_to_blh_matrix(state.blh) @ x[IDX_POS]
        velocity = state.velocity - x[IDX_VEL]
        q = quat_normalize(quat_multiply(rotvec2quat(x[IDX_ATT].copy()), state.quaternion))

        self.gyro_bias = self.gyro_bias + x[IDX_BG]
        self.acc_bias = self.acc_bias + x[IDX_BA]
        self.gyro_scale = self.gyro_scale + x[IDX_SG]
        self.acc_scale = self.acc_scale + x[IDX_SA]
        self.x = np.zeros(NSTATE)
        return NavigationState(state.time, q, velocity, blh)

    @property
    def std(self) -> np.ndarray:
        """Standard deviations of the 21 error states"""
        return np.sqrt(np.diag(self.P))


class LooseCoupledIntegrator:
    """
    Per-sample driver of mechanization, prediction and RTK updates

    Parameters
    ----------
    initial : NavigationState
        Aligned initial state
    noise : ImuNoise
        IMU stochastic model
    accept_float : bool
        Also use float RTK solutions as measurements
    position_std : dict, optional
        Measurement standard deviations per solution quality
    """

    def __init__(self, initial: NavigationState, noise: Optional[ImuNoise] = None,
                 accept_float: bool = False, position_std: Optional[dict] = None,
                 initial_std: Optional[np.ndarray] = None):
        self.mechanizer = SinsMechanizer(initial)
        self.filter = LooseCoupledFilter(noise or ImuNoise(), initial_std)
        self.accept_float = accept_float
        self.position_std = dict(DEFAULT_POSITION_STD)
        if position_std:
            self.position_std.update(position_std)
        self.updates = 0

    @property
    def state(self) -> NavigationState:
        return self.mechanizer.state

    def _accepts(self, rtk: RtkSolution) -> bool:
        if rtk.quality == SOLQ_FIX:
            return True
        return self.accept_float and rtk.quality == SOLQ_FLOAT

    def process(self, sample: ImuSample, rtk: Optional[RtkSolution] = None) -> NavigationState:
        """
        Mechanize one IMU sample, predict, and update with an RTK position

        Parameters:
        -----------
        sample : ImuSample
            Raw IMU increments
        rtk : RtkSolution, optional
            RTK solution time-aligned with this sample

        Returns:
        --------
        NavigationState
            Navigation state after this sample
        """
        prev = self.mechanizer.previous_sample
        dt = 0.0 if prev is None else sample.time - prev.time
        compensated = self.filter.compensate(sample, dt) if dt > 0.0 else sample

        state = self.mechanizer.mechanize(compensated)
        self.filter.predict(state, compensated, self.mechanizer.dt)

        if rtk is not None and self._accepts(rtk):
            blh = ecef2llh(rtk.position)
            std = self.position_std[rtk.quality]
            corrected = self.filter.update(state, blh, std)
            if corrected is not None:
                self.mechanizer.reset(corrected)
                self.updates += 1
                state = corrected
        return state

