from pydantic import BaseModel

class ProfileUpdate(BaseModel):
    is_public: bool
