"""Rental income estimation and HUD reference rent data."""

from dealflow.rent.reference import ReferenceRentMatcher, ReferenceRentStore
from dealflow.rent.estimator import RentalEstimator, check_estimate
from dealflow.rent.convert import convert_hud_csv, read_hud_csv
