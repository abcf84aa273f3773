"""Financial analysis engine for buy-and-hold rental properties."""

from dealflow.analysis.engine import PropertyAnalyzer
from dealflow.analysis.batch import BatchAnalyzer, summarize_results
from dealflow.analysis.cashflow import CashFlowCalculator
from dealflow.analysis.expenses import OperatingExpenseCalculator
from dealflow.analysis.mortgage import MortgageCalculator
from dealflow.analysis.returns import AppreciationProjector, ROICalculator
