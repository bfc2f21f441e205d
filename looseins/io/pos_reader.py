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

"""GNSS position solution file reader"""

import logging
from pathlib import Path
from typing import List, Optional

import numpy as np
import pandas as pd

from ..core.constants import SOLQ_FIX
from ..core.data_structures import RtkSolution
from ..core.time import GNSSTime

logger = logging.getLogger(__name__)

POS_COLUMNS = ['week', 'sow', 'x', 'y', 'z', 'q', 'ns', 'sdx', 'sdy', 'sdz']


class PosReader:
    """
    Reader of GNSS solutions as ``week sow x y z [q ns sdx sdy sdz]``

    Missing trailing columns default to a fixed solution with unknown
    satellite count and zero standard deviations.
    """

    def __init__(self, file_path: str):
        self.file_path = Path(file_path)
        if not self.file_path.exists():
            raise FileNotFoundError(f"Position file not found: {file_path}")
        self._df: Optional[pd.DataFrame] = None

    def read(self) -> pd.DataFrame:
        """Read the solutions into a DataFrame sorted by seconds of week"""
        if self._df is not None:
            return self._df
        logger.info(f"Reading GNSS solutions from {self.file_path}")
        try:
            df = pd.read_csv(self.file_path, sep=r'\s+', names=POS_COLUMNS, comment='#',
                             header=None)
        except (pd.errors.ParserError, UnicodeDecodeError) as e:
            raise ValueError(f"Failed to read position file: {e}") from e

        df = df.dropna(subset=['week', 'sow', 'x', 'y', 'z'])
        df = df.fillna({'q': SOLQ_FIX, 'ns': 0, 'sdx': 0.0, 'sdy': 0.0, 'sdz': 0.0})
        df = df.astype({'week': int, 'q': int, 'ns': int})
        self._df = df.sort_values('sow').reset_index(drop=True)
        logger.info(f"Loaded {len(self._df)} GNSS solutions")
        return self._df

    @staticmethod
    def _to_solution(row) -> RtkSolution:
        position = np.array([row.x, row.y, row.z], dtype=float)
        return RtkSolution(
            time=GNSSTime(int(row.week), float(row.sow)),
            quality=int(row.q),
            position=position,
            qr=np.diag(np.array([row.sdx, row.sdy, row.sdz], dtype=float) ** 2),
            ns=int(row.ns),
        )

    def solutions(self) -> List[RtkSolution]:
        return [self._to_solution(row) for row in self.read().itertuples(index=False)]

    def nearest(self, sow: float, tolerance: float) -> Optional[RtkSolution]:
        """
        Solution closest in time to ``sow``

        Returns None when no solution lies within ``tolerance`` seconds.
        """
        df = self.read()
        if len(df) == 0:
            return None
        times = df['sow'].to_numpy()
        i = int(np.argmin(np.abs(times - sow)))
        if abs(times[i] - sow) > tolerance:
            return None
        return self._to_solution(next(df.iloc[[i]].itertuples(index=False)))
