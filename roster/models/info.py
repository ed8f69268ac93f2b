from typing import List, Optional

from pydantic import BaseModel

# Import data types
from roster.models.member import PublicContact


class InfoModel(BaseModel):
    name: Optional[str] = "Guild Roster"
    description: Optional[str] = None
    credits: List[PublicContact]
