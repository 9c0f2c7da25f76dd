import logging

from fakes import FakeClient, MemoryVault
from pytest import fixture

from notion_tasks import EngineConfig, ReconciliationEngine

logging.basicConfig(level=logging.DEBUG)


@fixture
def vault() -> MemoryVault:
    return MemoryVault()


@fixture
def client() -> FakeClient:
    return FakeClient()


@fixture
def config() -> EngineConfig:
    return EngineConfig()


@fixture
def engine(
    client: FakeClient, vault: MemoryVault, config: EngineConfig
) -> ReconciliationEngine:
    return ReconciliationEngine(client, vault, vault, config)  # type: ignore
