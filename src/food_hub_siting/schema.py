# src/food_hub_siting/schema.py

# ---------- Tract table (CDC PLACES, wide) ----------
STATE_ABBR_COL = "StateAbbr"
STATE_COL = "StateDesc"            # full state name, grouping key for reports
COUNTY_NAME_COL = "CountyName"
COUNTY_FIPS_COL = "CountyFIPS"
TRACT_FIPS_COL = "TractFIPS"       # 11-digit fine key
POPULATION_COL = "TotalPopulation"
GEOLOCATION_COL = "Geolocation"    # "(lat, lon)" or "POINT (lon lat)"

# Health prevalence measures, percent in [0, 100]
HEALTH_MEASURES = [
    "ACCESS2_CrudePrev",
    "DIABETES_CrudePrev",
    "OBESITY_CrudePrev",
    "BPHIGH_CrudePrev",
    "CSMOKING_CrudePrev",
    "DEPRESSION_CrudePrev",
]

PLACES_COLUMNS = {
    STATE_ABBR_COL: "text",
    STATE_COL: "text",
    COUNTY_NAME_COL: "text",
    COUNTY_FIPS_COL: "text",
    TRACT_FIPS_COL: "text",
    POPULATION_COL: "float",
    **{m: "float" for m in HEALTH_MEASURES},
    GEOLOCATION_COL: "text",
}

# ---------- County table (USDA Food Environment Atlas, long) ----------
ATLAS_FIPS_COL = "FIPS"
ATLAS_STATE_COL = "State"
ATLAS_COUNTY_COL = "County"
ATLAS_VARIABLE_COL = "Variable_Code"
ATLAS_VALUE_COL = "Value"

ATLAS_LONG_COLUMNS = {
    ATLAS_FIPS_COL: "text",
    ATLAS_STATE_COL: "text",
    ATLAS_COUNTY_COL: "text",
    ATLAS_VARIABLE_COL: "text",
    ATLAS_VALUE_COL: "float",
}

# Food insecurity (state-level in the atlas, repeated per county)
FOOD_INSECURITY_COL = "FOODINSEC_15_17"
VERY_LOW_FOOD_SECURITY_COL = "VLFOODSEC_15_17"

# Store densities per 1,000 pop, used by the donor-access filter
GROCERY_COL = "GROCPTH16"
CONVENIENCE_COL = "CONVSPTH16"
FARMERS_MARKET_COL = "FMRKTPTH18"

ATLAS_METRICS = [
    FOOD_INSECURITY_COL,
    VERY_LOW_FOOD_SECURITY_COL,
    "PCT_LACCESS_POP15",
    "PCT_LACCESS_LOWI15",
    GROCERY_COL,
    "SUPERCPTH16",
    CONVENIENCE_COL,
    "SPECSPTH16",
    FARMERS_MARKET_COL,
    "SNAPSPTH17",
    "WICSPTH16",
    "FFRPTH16",
    "PCT_SNAP17",
    "PCT_NSLP17",
    "POVRATE15",
    "MEDHHINC15",
]

# ---------- Derived columns ----------
COARSE_KEY_COL = "coarse_key"      # 5-digit county FIPS, zero-padded text
LAT_COL = "lat"                    # degrees
LON_COL = "lon"                    # degrees
CLUSTER_COL = "cluster"

# FIPS widths
TRACT_FIPS_WIDTH = 11
COUNTY_FIPS_WIDTH = 5

# Basic sanity bounds (used for validation)
LAT_MIN, LAT_MAX = -90.0, 90.0
LON_MIN, LON_MAX = -180.0, 180.0
