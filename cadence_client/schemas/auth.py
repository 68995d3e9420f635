from pydantic import BaseModel

class Credentials(BaseModel):
    email: str
    password: str

class TokenOut(BaseModel):
    token: str

class Me(BaseModel):
    user_id: str
