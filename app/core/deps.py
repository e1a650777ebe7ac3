from typing import Optional
from fastapi import Request
from app.services.consumer_service import SubmissionConsumerService

def get_consumer(request: Request) -> Optional[SubmissionConsumerService]:
    return getattr(request.app.state, "consumer", None)
