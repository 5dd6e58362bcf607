from fastapi import APIRouter, Depends

from nimbus_admin.api.deps import get_current_user, get_gateway
from nimbus_admin.api.schemas import (
    BinlogUpdate,
    IncludedDbs,
    PerformanceUpdate,
    SchemaSync,
    SourceUpdateResult,
    Success,
    SwitchRequest,
)
from nimbus_admin.core.errors import NotFoundError
from nimbus_admin.domain.gateway import CommandGateway
from nimbus_admin.domain.nimbus.models import (
    BinlogPosition,
    MySqlSourceConfig,
    MySqlSourceUpdate,
    PerformanceConfig,
    ReplicationStatus,
)
from nimbus_admin.domain.nimbus.settings import NimbusSettings

router = APIRouter(prefix="/nimbus/{connection_id}", tags=["nimbus"], dependencies=[Depends(get_current_user)])


def get_nimbus_settings(connection_id: str, gateway: CommandGateway = Depends(get_gateway)) -> NimbusSettings:
    return NimbusSettings(gateway, connection_id)


# --- Replication ---
@router.get("/replication", response_model=ReplicationStatus)
def get_replication(nimbus: NimbusSettings = Depends(get_nimbus_settings)):
    return nimbus.get_replication_status()


@router.put("/replication/{mode}", response_model=Success)
def set_replication(mode: str, body: SwitchRequest, nimbus: NimbusSettings = Depends(get_nimbus_settings)):
    if mode == "full":
        nimbus.set_full_replication(body.enabled)
    elif mode == "incremental":
        nimbus.set_incremental_replication(body.enabled)
    else:
        raise NotFoundError(f"Unknown replication mode: {mode}")
    return Success()


# --- Performance ---
@router.get("/performance", response_model=PerformanceConfig)
def get_performance(nimbus: NimbusSettings = Depends(get_nimbus_settings)):
    return nimbus.get_performance_config()


@router.put("/performance", response_model=Success)
def update_performance(body: PerformanceUpdate, nimbus: NimbusSettings = Depends(get_nimbus_settings)):
    nimbus.update_performance_config(body.key, body.value)
    return Success()


# --- Binlog ---
@router.get("/binlog", response_model=BinlogPosition)
def get_binlog(nimbus: NimbusSettings = Depends(get_nimbus_settings)):
    return nimbus.get_binlog_position()


@router.put("/binlog", response_model=Success)
def set_binlog(body: BinlogUpdate, nimbus: NimbusSettings = Depends(get_nimbus_settings)):
    nimbus.set_binlog_position(body.file, body.position)
    return Success()


# --- Source ---
@router.get("/source", response_model=MySqlSourceConfig)
def get_source(nimbus: NimbusSettings = Depends(get_nimbus_settings)):
    return nimbus.get_source_config()


@router.put("/source", response_model=SourceUpdateResult)
def update_source(body: MySqlSourceUpdate, nimbus: NimbusSettings = Depends(get_nimbus_settings)):
    applied = nimbus.update_source_config(body)
    return SourceUpdateResult(applied=applied)


# --- Included DBs ---
@router.get("/included-dbs", response_model=IncludedDbs)
def get_included_dbs(nimbus: NimbusSettings = Depends(get_nimbus_settings)):
    return IncludedDbs(included_dbs=nimbus.get_included_dbs())


@router.put("/included-dbs", response_model=Success)
def set_included_dbs(body: IncludedDbs, nimbus: NimbusSettings = Depends(get_nimbus_settings)):
    nimbus.set_included_dbs(body.included_dbs)
    return Success()


# --- Schema sync ---
@router.get("/schema-sync", response_model=SchemaSync)
def get_schema_sync(nimbus: NimbusSettings = Depends(get_nimbus_settings)):
    return SchemaSync(enabled=nimbus.get_schema_sync())


@router.put("/schema-sync", response_model=Success)
def set_schema_sync(body: SchemaSync, nimbus: NimbusSettings = Depends(get_nimbus_settings)):
    nimbus.set_schema_sync(body.enabled)
    return Success()
