'''

'''
from pydantic import BaseModel
from datetime import datetime

class Token(BaseModel):
    access_token: str
    token_type: str
    redirect_to: str

class TokenPayload(BaseModel):
    sub: str # 'sub' is the standard JWT subject claim (the user's id)
    exp: datetime
