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

"""IMU sample and noise model"""

from dataclasses import dataclass, field

import numpy as np

from ..core.constants import D2R


def _vector3(values, name: str) -> np.ndarray:
    arr = np.asarray(values, dtype=float).reshape(-1)
    if arr.shape != (3,):
        raise ValueError(f"{name} must be a 3D vector, got shape {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise ValueError(f"{name} contains non-finite values")
    return arr


@dataclass(frozen=True, eq=False)
class ImuSample:
    """
    One inertial sample as increments over the sample interval.

    Attributes:
        time (float): Time tag at the end of the interval (s)
        dtheta (np.ndarray): Gyroscope angle increment [x, y, z] (rad)
        dvel (np.ndarray): Accelerometer velocity increment [x, y, z] (m/s)

    Examples:
        >>> sample = ImuSample(0.01, [0.0, 0.0, 1e-6], [0.0, 0.0, -0.098])
        >>> sample.dvel
        array([ 0.   ,  0.   , -0.098])
    """
    time: float
    dtheta: np.ndarray
    dvel: np.ndarray

    def __post_init__(self):
        """
        Validate the increments.

        Raises:
            ValueError: If an increment is not a finite 3D vector
        """
        object.__setattr__(self, 'time', float(self.time))
        object.__setattr__(self, 'dtheta', _vector3(self.dtheta, 'dtheta'))
        object.__setattr__(self, 'dvel', _vector3(self.dvel, 'dvel'))

    @classmethod
    def from_rates(cls, time: float, gyro: np.ndarray, acc: np.ndarray, dt: float) -> 'ImuSample':
        """Build a sample from angular rate (rad/s) and specific force (m/s^2)"""
        if dt <= 0:
            raise ValueError(f"Sample interval must be positive, got {dt}")
        return cls(time, np.asarray(gyro, dtype=float) * dt, np.asarray(acc, dtype=float) * dt)

    def compensated(self, gyro_bias: np.ndarray, acc_bias: np.ndarray,
                    gyro_scale: np.ndarray, acc_scale: np.ndarray, dt: float) -> 'ImuSample':
        """Copy with biases (per second) and scale factors removed"""
        dtheta = (self.dtheta - gyro_bias * dt) / (1.0 + gyro_scale)
        dvel = (self.dvel - acc_bias * dt) / (1.0 + acc_scale)
        return ImuSample(self.time, dtheta, dvel)


@dataclass
class ImuNoise:
    """
    Stochastic model of an IMU for the error-state filter.

    Attributes:
        arw (float): Angle random walk (rad/sqrt(s))
        vrw (float): Velocity random walk (m/s/sqrt(s))
        gyro_bias_std (float): Gyro bias stability (rad/s)
        acc_bias_std (float): Accelerometer bias stability (m/s^2)
        gyro_scale_std (float): Gyro scale factor stability (-)
        acc_scale_std (float): Accelerometer scale factor stability (-)
        correlation_time (float): First-order Gauss-Markov time constant (s)

    Examples:
        >>> noise = ImuNoise.from_datasheet(arw_deg_sqrt_h=0.2, vrw_m_s_sqrt_h=0.05)
    """
    arw: float = 0.2 * D2R / 60.0
    vrw: float = 0.05 / 60.0
    gyro_bias_std: float = 10.0 * D2R / 3600.0
    acc_bias_std: float = 1e-3 * 9.8
    gyro_scale_std: float = 1000e-6
    acc_scale_std: float = 1000e-6
    correlation_time: float = 3600.0
    lever_arm: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self):
        if self.correlation_time <= 0:
            raise ValueError("correlation_time must be positive")
        self.lever_arm = _vector3(self.lever_arm, 'lever_arm')

    @classmethod
    def from_datasheet(cls, arw_deg_sqrt_h: float = 0.2, vrw_m_s_sqrt_h: float = 0.05,
                       gyro_bias_deg_h: float = 10.0, acc_bias_mg: float = 1.0,
                       gyro_scale_ppm: float = 1000.0, acc_scale_ppm: float = 1000.0,
                       correlation_time: float = 3600.0, lever_arm=(0.0, 0.0, 0.0)) -> 'ImuNoise':
        """
        Convert datasheet units to SI.

        Parameters:
        -----------
        arw_deg_sqrt_h : float
            Angle random walk (deg/sqrt(h))
        vrw_m_s_sqrt_h : float
            Velocity random walk (m/s/sqrt(h))
        gyro_bias_deg_h : float
            Gyro bias (deg/h)
        acc_bias_mg : float
            Accelerometer bias (mg)
        gyro_scale_ppm, acc_scale_ppm : float
            Scale factor errors (ppm)
        correlation_time : float
            Gauss-Markov time constant (s)
        lever_arm : sequence
            GNSS antenna position in the body frame (m)
        """
        return cls(
            arw=arw_deg_sqrt_h * D2R / 60.0,
            vrw=vrw_m_s_sqrt_h / 60.0,
            gyro_bias_std=gyro_bias_deg_h * D2R / 3600.0,
            acc_bias_std=acc_bias_mg * 1e-3 * 9.8,
            gyro_scale_std=gyro_scale_ppm * 1e-6,
            acc_scale_std=acc_scale_ppm * 1e-6,
            correlation_time=correlation_time,
            lever_arm=np.asarray(lever_arm, dtype=float),
        )
