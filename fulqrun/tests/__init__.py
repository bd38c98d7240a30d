'''
FulQrun Backend Test Suite

Test Modules:
-------------
- test_meddpicc.py: Criterion clamping, aggregate score, record defaults
- test_snapshot.py: Opportunity -> DealSnapshot derivation
- test_progression.py: Stage gates, confidence, auto-advance, unknown stages
- test_deal_health.py: Penalty rules, buckets, trends, worked examples
- test_portfolio.py: Portfolio fold, pipeline metrics, upcoming closes
- test_stage_history.py: DealProgression history updates
- test_opportunity_analytics.py: Opportunity analytics, AI insight mapping,
  stage change planning
- test_opportunity_store.py: asyncpg row mapping and writes (mocked)
- test_api.py: FastAPI routers via TestClient

Running Tests:
--------------
    pip install -e ".[test]"
    pytest fulqrun/tests/ -v

Configuration:
--------------
See conftest.py for shared fixtures and test configuration.
'''

__all__ = []
