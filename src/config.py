import os
from pathlib import Path


# openZH canton-level feed (one record per canton and reporting day)
CASE_DATA_URL = os.environ.get(
    "COVID_CASE_DATA_URL",
    "https://covid19-rest.herokuapp.com/api/openzh/v1/country/CH",
)
REQUEST_TIMEOUT = float(os.environ.get("COVID_REQUEST_TIMEOUT", "30"))

DATA_DIR = Path(os.environ.get("COVID_DATA_DIR", "data"))
POPULATION_FILE = DATA_DIR / "Population_Size_BFS.xlsx"
CODE_MAPPING_FILE = DATA_DIR / "canton_codes.csv"
GEOMETRY_FILE = DATA_DIR / "swissBOUNDARIES3D" / "swissBOUNDARIES3D_1_3_TLM_KANTONSGEBIET.shp"
ENRICHED_FILE = DATA_DIR / "latest_swiss_data.csv"
FIGURE_DIR = DATA_DIR / "reference_figures"

# Numeric canton identifier in the swissBOUNDARIES3D canton layer
GEOMETRY_ID_COLUMN = "KANTONSNUM"

REGION_CODE_COLUMN = "abbreviation_canton_and_fl"
COUNTER_COLUMNS = [
    "ncumul_tested_fwd",
    "ncumul_conf_fwd",
    "ncumul_hosp_fwd",
    "ncumul_deceased_fwd",
]
CASE_FIELDS = ["date", REGION_CODE_COLUMN] + COUNTER_COLUMNS
ENRICHED_COLUMNS = CASE_FIELDS + ["population", "incidence"]

INCIDENCE_SCALE = 100000
QUANTILE_PROBABILITIES = (0, 0.2, 0.4, 0.6, 0.8, 1.0)

WGS84 = "EPSG:4326"
METRIC_CRS = "EPSG:2056"  # CH1903+ / LV95
