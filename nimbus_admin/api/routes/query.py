import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from nimbus_admin.api.deps import get_current_user, get_gateway
from nimbus_admin.api.schemas import ProbeRequest, ProbeResponse, QueryRequest
from nimbus_admin.core.errors import UpstreamError
from nimbus_admin.domain.gateway import CommandGateway
from nimbus_admin.domain.normalizer import QueryResult

logger = logging.getLogger(__name__)

router = APIRouter(tags=["query"], dependencies=[Depends(get_current_user)])


@router.post("/query", response_model=QueryResult)
def run_query(body: QueryRequest, gateway: CommandGateway = Depends(get_gateway)):
    return gateway.execute(body.connection_id, body.sql, body.database)


@router.post("/test", response_model=ProbeResponse)
def test_connection(body: ProbeRequest, gateway: CommandGateway = Depends(get_gateway)):
    try:
        rows = gateway.probe(body.host, body.port, body.user, body.password)
    except UpstreamError as e:
        logger.info("Connection test to %s:%s failed: %s", body.host, body.port, e.message)
        return JSONResponse(
            status_code=e.status_code,
            content={"success": False, "error": e.message, "details": e.code},
        )
    return ProbeResponse(success=True, message="Connection successful", data=rows)
