"""Configuração dos testes do pacote shared (tenancy, config, cache, logging)."""

import os
import sys
from pathlib import Path

SHARED_DIR = Path(__file__).resolve().parents[1]
SERVICES_DIR = SHARED_DIR.parent

if str(SERVICES_DIR) not in sys.path:
    sys.path.insert(0, str(SERVICES_DIR))

# Sem Redis nos testes: cache e publicação de eventos ficam desligados.
os.environ["REDIS_URL"] = ""
os.environ.pop("TENANT_SCHEMA_PREFIX", None)
