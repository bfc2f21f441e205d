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
Command line driver for INS mechanization and loosely coupled INS/RTK runs

Usage:
    looseins config.yaml [--mode sins|loose_coupled] [--output traj.txt]
"""

import argparse
import logging
from typing import Iterable, List, Optional

import numpy as np
import pandas as pd

from .config import Config
from .core.constants import D2R, R2D, SOLQ_FIX, SOLQ_FLOAT
from .fusion.loose_coupled import LooseCoupledIntegrator
from .fusion.mechanization import SinsMechanizer
from .fusion.state import NavigationState
from .io.imu_reader import ImuReader
from .io.pos_reader import PosReader
from .logger import setup_logger_from_config
from .rtk.rtk_processor import RtkProcessor
from .satellite.ephemeris import EphemerisTable
from .sensors.imu import ImuNoise

logger = logging.getLogger(__name__)

MODES = ('sins', 'loose_coupled')


def build_initial_state(cfg: Config) -> NavigationState:
    """Initial navigation state from the SINS section (degrees in the file)"""
    blh = cfg.read_list('SINS', 'initial_blh', [0.0, 0.0, 0.0])
    if len(blh) != 3:
        raise ValueError("SINS.initial_blh needs latitude, longitude and height")
    blh = np.array([blh[0] * D2R, blh[1] * D2R, blh[2]])
    velocity = np.array(cfg.read_list('SINS', 'initial_velocity', [0.0, 0.0, 0.0]))
    euler = np.array(cfg.read_list('SINS', 'initial_euler', [0.0, 0.0, 0.0])) * D2R
    time = cfg.read_float('SINS', 'initial_time', 0.0)
    return NavigationState.from_euler(time, euler, velocity, blh)


def build_noise(cfg: Config) -> ImuNoise:
    """IMU stochastic model from datasheet units in the SINS section"""
    return ImuNoise.from_datasheet(
        arw_deg_sqrt_h=cfg.read_float('SINS', 'arw', 0.2),
        vrw_m_s_sqrt_h=cfg.read_float('SINS', 'vrw', 0.05),
        gyro_bias_deg_h=cfg.read_float('SINS', 'gyro_bias', 10.0),
        acc_bias_mg=cfg.read_float('SINS', 'acc_bias', 1.0),
        gyro_scale_ppm=cfg.read_float('SINS', 'gyro_scale', 1000.0),
        acc_scale_ppm=cfg.read_float('SINS', 'acc_scale', 1000.0),
        correlation_time=cfg.read_float('SINS', 'correlation_time', 3600.0),
        lever_arm=cfg.read_list('SINS', 'lever_arm', [0.0, 0.0, 0.0]),
    )


def build_rtk_processor(cfg: Config, table: EphemerisTable) -> RtkProcessor:
    """RTK pipeline configured from the RTK section"""
    base = cfg.read_list('RTK', 'base_position', None)
    return RtkProcessor(
        table,
        base_position=None if base is None else np.array(base),
        elevation_mask=cfg.read_float('RTK', 'elevation_threshold', 15.0) * D2R,
        ratio_threshold=cfg.read_float('RTK', 'ratio_threshold', 3.0),
        hysteresis=cfg.read_float('RTK', 'hysteresis', 10.0) * D2R,
        gf_threshold=cfg.read_float('RTK', 'gf_threshold', 0.05),
        mw_threshold=cfg.read_float('RTK', 'mw_threshold', 3.0),
    )


def _imu_reader(cfg: Config) -> ImuReader:
    path = cfg.read_string('SINS', 'imu_file_path')
    if not path:
        raise ValueError("SINS.imu_file_path is not set")
    return ImuReader(path,
                     rates=cfg.read_bool('SINS', 'imu_rates', False),
                     column_order=cfg.read_string('SINS', 'imu_column_order', 'gyro_first'))


def _time_window(cfg: Config):
    start = cfg.read_float('SINS', 'initial_time', 0.0)
    end = cfg.read_float('SINS', 'end_time', -1.0)
    return start, (end if end > 0 else None)


def run_mechanization(cfg: Config) -> List[NavigationState]:
    """Free-running strapdown propagation of the whole IMU file"""
    mechanizer = SinsMechanizer(build_initial_state(cfg))
    start, end = _time_window(cfg)
    states = [mechanizer.mechanize(sample) for sample in _imu_reader(cfg).samples(start, end)]
    logger.info(f"Mechanized {len(states)} IMU samples")
    return states


def run_loose_coupled(cfg: Config) -> List[NavigationState]:
    """
    Loosely coupled run of an IMU file against a GNSS solution file

    Each GNSS solution is used once, at the IMU sample nearest in time when
    it lies within half the IMU interval.
    """
    pos_path = cfg.read_string('GNSS', 'pos_file_path')
    if not pos_path:
        raise ValueError("GNSS.pos_file_path is not set")
    pos_reader = PosReader(pos_path)

    position_std = {
        SOLQ_FIX: np.array(cfg.read_list('GNSS', 'fix_std', [0.02, 0.02, 0.05])),
        SOLQ_FLOAT: np.array(cfg.read_list('GNSS', 'float_std', [0.3, 0.3, 0.6])),
    }
    integrator = LooseCoupledIntegrator(
        build_initial_state(cfg), build_noise(cfg),
        accept_float=cfg.read_bool('GNSS', 'accept_float', False),
        position_std=position_std,
    )

    start, end = _time_window(cfg)
    interval = cfg.read_float('SINS', 'imu_interval', 0.01)
    tolerance = 0.5 * interval

    states = []
    last_fix = None
    for sample in _imu_reader(cfg).samples(start, end):
        rtk = pos_reader.nearest(sample.time, tolerance)
        if rtk is not None and last_fix is not None and rtk.time.tow == last_fix:
            rtk = None
        if rtk is not None:
            last_fix = rtk.time.tow
        states.append(integrator.process(sample, rtk))

    logger.info(f"Processed {len(states)} IMU samples with {integrator.updates} GNSS updates")
    return states


def trajectory_frame(states: Iterable[NavigationState]) -> pd.DataFrame:
    """Navigation states as a table in degrees, metres and m/s"""
    rows = []
    for s in states:
        euler = s.euler * R2D
        rows.append([s.time, s.blh[0] * R2D, s.blh[1] * R2D, s.blh[2],
                     *s.velocity, *euler])
    return pd.DataFrame(rows, columns=['time', 'lat', 'lon', 'height', 'vn', 've', 'vd',
                                       'roll', 'pitch', 'yaw'])


def write_trajectory(states: Iterable[NavigationState], path: str):
    df = trajectory_frame(states)
    df.to_csv(path, sep=' ', index=False, float_format='%.9f')
    logger.info(f"Wrote {len(df)} states to {path}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Loosely coupled GNSS RTK / INS processing")
    parser.add_argument('config', help="YAML or JSON configuration file")
    parser.add_argument('--mode', choices=MODES, help="Override BASE.mode")
    parser.add_argument('--output', '-o', help="Trajectory output file")
    parser.add_argument('--log-level', help="Override LOG.level")
    args = parser.parse_args(argv)

    cfg = Config.from_file(args.config)
    log_cfg = cfg.section('LOG')
    if args.log_level:
        log_cfg['level'] = args.log_level
    setup_logger_from_config(log_cfg)

    mode = args.mode or cfg.read_string('BASE', 'mode', 'loose_coupled')
    if mode not in MODES:
        raise ValueError(f"Unsupported mode: {mode}")

    states = run_mechanization(cfg) if mode == 'sins' else run_loose_coupled(cfg)
    if args.output:
        write_trajectory(states, args.output)
    elif states:
        logger.info(f"Final state: {states[-1]}")
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
