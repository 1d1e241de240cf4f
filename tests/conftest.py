import matplotlib
matplotlib.use("Agg")

import pandas as pd
import geopandas as gpd
import pytest
from shapely.geometry import box

from src.config import METRIC_CRS


def make_case_record(date, canton, conf, tested=None, hosp=None, deceased=None, **extra):
    record = {
        "date": date,
        "abbreviation_canton_and_fl": canton,
        "ncumul_tested_fwd": tested,
        "ncumul_conf_fwd": conf,
        "ncumul_hosp_fwd": hosp,
        "ncumul_deceased_fwd": deceased,
    }
    record.update(extra)
    return record


@pytest.fixture
def raw_records():
    return [
        make_case_record("2020-11-01", "ZH", 40000, tested=200000, hosp=900, deceased=250, time="18:00", source="https://zh.ch"),
        make_case_record("2020-11-01", "BE", 20000, hosp=500, deceased=120),
        make_case_record("2020-11-02", "ZH", 41000, tested=205000, hosp=950, deceased=260),
        make_case_record("2020-11-02", "BE", 21000, hosp=520, deceased=125),
        make_case_record("2020-11-02", "FL", 1500),
    ]


@pytest.fixture
def population():
    return pd.DataFrame({
        "ktn": ["BE", "FL", "ZH"],
        "population": [1000000, 0, 1500000],
    })


@pytest.fixture
def code_mapping():
    return pd.DataFrame({
        "code": ["ZH", "BE", "LU", "UR"],
        "code_num": [1, 2, 3, 4],
    })


@pytest.fixture
def canton_fragments():
    # BE (2) is split into two fragments; 9 has no code mapping
    return gpd.GeoDataFrame(
        {"code_num": [1, 2, 2, 3, 4, 9]},
        geometry=[
            box(2680000, 1240000, 2700000, 1260000),
            box(2580000, 1160000, 2620000, 1200000),
            box(2560000, 1220000, 2570000, 1230000),
            box(2640000, 1200000, 2660000, 1220000),
            box(2680000, 1170000, 2700000, 1190000),
            box(2720000, 1250000, 2730000, 1260000),
        ],
        crs=METRIC_CRS,
    )


@pytest.fixture
def enriched():
    return pd.DataFrame({
        "date": pd.to_datetime(["2020-11-02"] * 3),
        "abbreviation_canton_and_fl": ["ZH", "BE", "LU"],
        "ncumul_tested_fwd": pd.array([205000, None, None], dtype="Int64"),
        "ncumul_conf_fwd": pd.array([41000, 21000, 20000], dtype="Int64"),
        "ncumul_hosp_fwd": pd.array([950, 520, None], dtype="Int64"),
        "ncumul_deceased_fwd": pd.array([260, 125, None], dtype="Int64"),
        "population": pd.array([1500000, 1000000, 400000], dtype="Int64"),
        "incidence": [41000 / 1500000 * 100000, 21000 / 1000000 * 100000, 20000 / 400000 * 100000],
    })
