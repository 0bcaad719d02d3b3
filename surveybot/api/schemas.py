from typing import List, Literal, Optional
from pydantic import BaseModel, Field

class ClientSummary(BaseModel):
    name: str = ""
    firstName: str = ""
    number: str = ""

class StartWorkflowResponse(BaseModel):
    message: str
    success: int
    total: int
    clients: List[ClientSummary] = Field(default_factory=list)

class ReminderClient(BaseModel):
    prenom: str
    numero: str

class ReminderResponse(BaseModel):
    message: str
    client: ReminderClient

class ActiveClient(BaseModel):
    numero: str
    prenom: str
    state: str
    timestamp: str  # ISO-8601

class ActiveQuestion(BaseModel):
    numero: str
    currentIndex: int
    totalQuestions: int

class ActiveClientsResponse(BaseModel):
    activeClients: List[ActiveClient] = Field(default_factory=list)
    activeQuestions: List[ActiveQuestion] = Field(default_factory=list)
    total: int = 0

class InboundMessage(BaseModel):
    sender: str
    text: str

class WebhookAck(BaseModel):
    status: Literal["accepted", "ignored"] = "accepted"
    accepted: int = 0

class ConnectionUpdate(BaseModel):
    connection: Optional[str] = None
    reason: Optional[str] = None
