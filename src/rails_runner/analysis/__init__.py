"""Mutation analysis built on the console client."""

from .dry_run import MutationAnalysis, MutationAnalyzer, build_dry_run_script

__all__ = ["MutationAnalysis", "MutationAnalyzer", "build_dry_run_script"]
