# panelbridge/app/runner.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from panelbridge.app.config import BridgeConfig
from panelbridge.app.controller import BridgeController
from panelbridge.core.context import Context
from panelbridge.transport.factory import DeviceTransport


@dataclass(frozen=True)
class AppRun:
    controller: BridgeController
    context: Context
    device_transport: DeviceTransport


def start_run(cfg: BridgeConfig, *, context: Optional[Context] = None) -> AppRun:
    """Build context, transport and controller from config. Nothing is opened yet."""
    log = logging.getLogger(__name__)

    context = context or Context.load(cfg.metadata_dir)
    created = context.transport_factory.create(cfg.transport, overrides=dict(cfg.transport_overrides))

    log.info(
        "RUN_READY transport=%s driver=%s %s=%s protocol_version=%d",
        created.meta.name,
        created.meta.driver,
        created.meta.key_param,
        created.key_param_value,
        context.protocol_version,
    )

    controller = BridgeController(
        cfg,
        context=context,
        device_transport=created,
        logger=log,
    )
    return AppRun(controller=controller, context=context, device_transport=created)
