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

"""IMU data reading utilities"""

import logging
from pathlib import Path
from typing import Iterator, List, Optional

import numpy as np
import pandas as pd

from ..sensors.imu import ImuSample

logger = logging.getLogger(__name__)

INCREMENT_COLUMNS = ['time', 'dtheta_x', 'dtheta_y', 'dtheta_z', 'dvel_x', 'dvel_y', 'dvel_z']
RATE_COLUMNS = ['time', 'accel_x', 'accel_y', 'accel_z', 'gyro_x', 'gyro_y', 'gyro_z']


class ImuReader:
    """IMU data reader for whitespace separated text files"""

    def __init__(self, file_path: str, rates: bool = False, column_order: str = 'gyro_first'):
        """
        Initialize IMU reader

        Parameters:
        -----------
        file_path : str
            Path to IMU data file
        rates : bool
            The file holds rates (rad/s, m/s^2) instead of increments; rates
            are integrated over the interval to the previous line
        column_order : str
            'gyro_first': time dthx dthy dthz dvx dvy dvz (increments)
            'accel_first': time ax ay az gx gy gz

        Raises:
        -------
        FileNotFoundError
            If the file does not exist
        ValueError
            If column_order is unknown
        """
        self.file_path = Path(file_path)
        self.rates = rates
        if column_order not in ('gyro_first', 'accel_first'):
            raise ValueError(f"Unsupported column order: {column_order}")
        self.column_order = column_order

        if not self.file_path.exists():
            raise FileNotFoundError(f"IMU file not found: {file_path}")

    def read(self, start_time: Optional[float] = None,
             end_time: Optional[float] = None) -> pd.DataFrame:
        """
        Read IMU data as a DataFrame sorted by time

        Returns:
        --------
        pd.DataFrame
            Columns: time, dtheta_x/y/z (rad), dvel_x/y/z (m/s)
        """
        logger.info(f"Reading IMU data from {self.file_path}")
        names = RATE_COLUMNS if self.column_order == 'accel_first' else INCREMENT_COLUMNS
        try:
            df = pd.read_csv(self.file_path, sep=r'\s+', names=names, comment='#', header=None)
        except (pd.errors.ParserError, UnicodeDecodeError) as e:
            raise ValueError(f"Failed to read IMU text file: {e}") from e

        df = df.dropna().sort_values('time').reset_index(drop=True)
        if self.column_order == 'accel_first':
            df = df.rename(columns={
                'gyro_x': 'dtheta_x', 'gyro_y': 'dtheta_y', 'gyro_z': 'dtheta_z',
                'accel_x': 'dvel_x', 'accel_y': 'dvel_y', 'accel_z': 'dvel_z',
            })[INCREMENT_COLUMNS]

        if self.rates:
            df = self._integrate_rates(df)

        if start_time is not None:
            df = df[df['time'] >= start_time]
        if end_time is not None:
            df = df[df['time'] <= end_time]
        df = df.reset_index(drop=True)

        logger.info(f"Loaded {len(df)} IMU samples")
        if len(df) > 1:
            dt = df['time'].diff().median()
            freq = 1.0 / dt if dt > 0 else 0.0
            logger.info(f"  Time range: {df['time'].iloc[0]:.3f} - {df['time'].iloc[-1]:.3f}")
            logger.info(f"  Sampling rate: ~{freq:.1f} Hz")
        return df

    @staticmethod
    def _integrate_rates(df: pd.DataFrame) -> pd.DataFrame:
        """Turn rates into increments; the first line uses the median interval"""
        df = df.copy()
        dt = df['time'].diff()
        if len(df) > 1:
            dt.iloc[0] = dt.iloc[1:].median()
        else:
            dt.iloc[0] = 0.0
        cols = INCREMENT_COLUMNS[1:]
        df[cols] = df[cols].mul(dt, axis=0)
        return df

    def samples(self, start_time: Optional[float] = None,
                end_time: Optional[float] = None) -> Iterator[ImuSample]:
        """Iterate over the file as ImuSample objects"""
        df = self.read(start_time, end_time)
        values = df[INCREMENT_COLUMNS].to_numpy()
        for row in values:
            yield ImuSample(row[0], row[1:4], row[4:7])

    def read_samples(self, start_time: Optional[float] = None,
                     end_time: Optional[float] = None) -> List[ImuSample]:
        return list(self.samples(start_time, end_time))


def estimate_interval(df: pd.DataFrame) -> float:
    """Median sample interval of an IMU DataFrame (s)"""
    if len(df) < 2:
        return 0.0
    return float(np.median(np.diff(df['time'].to_numpy())))
