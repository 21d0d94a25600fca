"""Integration tests for the leadsweep service.

These tests verify the integration between different components:
- Zone selection, discovery and qualification into leads
- Qualified leads flowing into the outreach campaigns
- Continuous zone processing and failure handling
"""
