"""
Data ingestion module for EventWatch.

Handles polling the VATSIM and STATSIM APIs, parsing their payloads, and
scheduling periodic event refresh.
"""

from eventwatch.ingestion.gateway import UpstreamGateway
from eventwatch.ingestion.scheduler import RefreshScheduler
from eventwatch.ingestion.statsim_client import StatsimClient
from eventwatch.ingestion.vatsim_client import VatsimClient

__all__ = ['RefreshScheduler', 'StatsimClient', 'UpstreamGateway', 'VatsimClient']
