from pydantic import BaseModel
from typing import Optional
from datetime import datetime

# 'unavailable' è ammesso dallo schema ma nessun flusso lo imposta ancora
VIDEO_STATUSES = ['new', 'transcribing', 'transcribed', 'read', 'unavailable']
# Stati che l'utente può impostare a mano
EDITABLE_VIDEO_STATUSES = [s for s in VIDEO_STATUSES if s != 'unavailable']


class Channel(BaseModel):
    channel_id: str
    name: str
    thumbnail: str = ''


class Video(BaseModel):
    video_id: str
    channel_id: str
    title: str
    thumbnail: str = ''
    published_at: Optional[datetime] = None
    duration: int = 0  # secondi
    status: str = "new"  # new, transcribing, transcribed, read, unavailable
