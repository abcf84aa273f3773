"""File-based persistence and export of properties and analysis results."""

from dealflow.storage.repository import AnalysisRepository
from dealflow.storage.export import EXPORT_COLUMNS, export_csv, results_to_csv
