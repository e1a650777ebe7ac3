from typing import Annotated, Optional
from fastapi import APIRouter, Depends
from app.core.deps import get_consumer
from app.services.consumer_service import SubmissionConsumerService

router = APIRouter()
ConsumerDep = Annotated[Optional[SubmissionConsumerService], Depends(get_consumer)]

@router.get("/submissions/health")
async def health_check(consumer: ConsumerDep):
    return {"status": "ok", "consumer": bool(consumer and consumer.is_ready())}
