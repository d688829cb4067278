from googleapiclient.discovery import build
from typing import List, Optional
from googleapiclient.errors import HttpError
import logging
import re
import html

from veille.api.models.video import Channel, Video

logger = logging.getLogger(__name__)

_DURATION_RE = re.compile(r'PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?')


def parse_duration(duration: str) -> int:
    """Converte una durata ISO 8601 (es. PT1H2M3S) in secondi. 0 se non riconosciuta."""
    match = _DURATION_RE.match(duration or '')
    if not match:
        return 0
    hours, minutes, seconds = (int(part or 0) for part in match.groups())
    return hours * 3600 + minutes * 60 + seconds


class YouTubeClient:
    def __init__(self, api_key: Optional[str]):
        self.api_key = api_key
        self.youtube = None
        self._init_service()

    def _init_service(self):
        """Inizializza il servizio YouTube Data API v3 con la chiave API"""
        try:
            if not self.api_key:
                raise ValueError("YOUTUBE_API_KEY not configured")
            self.youtube = build('youtube', 'v3', developerKey=self.api_key, cache_discovery=False)
        except Exception as e:
            logger.error(f"Error initializing YouTube service: {str(e)}")
            raise

    def resolve_channel_id(self, url_or_id: str) -> Optional[str]:
        """Estrae l'ID del canale da URL, handle (@nome) o ID. None se non trovato."""
        url_or_id = url_or_id.strip()
        if url_or_id.startswith('UC') and len(url_or_id) == 24:
            return url_or_id

        patterns = [
            r'youtube\.com/channel/(UC[\w-]+)',
            r'youtube\.com/@([\w-]+)',
            r'youtube\.com/c/([\w-]+)',
            r'youtube\.com/user/([\w-]+)',
        ]

        identifier = url_or_id
        is_handle = False
        for pattern in patterns:
            match = re.search(pattern, url_or_id)
            if match:
                identifier = match.group(1)
                is_handle = not identifier.startswith('UC')
                break

        if identifier.startswith('@'):
            identifier = identifier[1:]
            is_handle = True

        if not is_handle:
            return identifier

        try:
            response = self.youtube.channels().list(part='id', forHandle=identifier).execute()
            if response.get('items'):
                return response['items'][0]['id']

            # Prova come vecchio username
            response = self.youtube.channels().list(part='id', forUsername=identifier).execute()
            if response.get('items'):
                return response['items'][0]['id']
        except HttpError as e:
            logger.error(f"Errore HTTP risolvendo il canale '{identifier}': {str(e)}")
            raise

        logger.info(f"Nessun canale trovato per '{identifier}'.")
        return None

    def get_channel_details(self, channel_id: str) -> Optional[Channel]:
        try:
            response = self.youtube.channels().list(part='snippet', id=channel_id).execute()
        except HttpError as e:
            logger.error(f"Error getting channel details for {channel_id}: {str(e)}")
            raise

        if not response.get('items'):
            return None

        item = response['items'][0]
        return Channel(
            channel_id=item['id'],
            name=html.unescape(item['snippet']['title']),
            thumbnail=item['snippet'].get('thumbnails', {}).get('default', {}).get('url', ''),
        )

    def get_channel_videos(self, channel_id: str, max_results: int = 10) -> List[Video]:
        """
        Recupera gli ultimi video caricati da un canale tramite la playlist "Uploads",
        arricchiti con la durata.
        """
        logger.info(f"Inizio recupero video recenti per canale {channel_id} (max {max_results}).")
        try:
            channel_response = self.youtube.channels().list(part='contentDetails', id=channel_id).execute()
            if not channel_response.get('items'):
                logger.warning(f"Canale {channel_id} non trovato.")
                return []

            uploads_playlist_id = channel_response['items'][0]['contentDetails']['relatedPlaylists']['uploads']

            playlist_response = self.youtube.playlistItems().list(
                part='snippet,contentDetails',
                playlistId=uploads_playlist_id,
                maxResults=max_results,
            ).execute()
            items = playlist_response.get('items', [])
            if not items:
                return []

            video_ids = [item['contentDetails']['videoId'] for item in items]
            videos_response = self.youtube.videos().list(part='contentDetails', id=','.join(video_ids)).execute()
            durations = {
                v['id']: parse_duration(v['contentDetails'].get('duration'))
                for v in videos_response.get('items', [])
            }

            videos = []
            for item in items:
                video_id = item['contentDetails']['videoId']
                snippet = item['snippet']
                videos.append(Video(
                    video_id=video_id,
                    channel_id=snippet.get('channelId', channel_id),
                    title=html.unescape(snippet['title']),
                    thumbnail=snippet.get('thumbnails', {}).get('medium', {}).get('url', ''),
                    published_at=snippet.get('publishedAt'),
                    duration=durations.get(video_id, 0),
                ))

            logger.info(f"Recupero video completato. Trovati: {len(videos)} video.")
            return videos

        except HttpError as e:
            # Quota esaurita: rilanciamo, il chiamante non deve ricevere una lista vuota
            if e.resp.status == 403 and 'quotaExceeded' in str(e):
                logger.error(f"QUOTA API YOUTUBE SUPERATA durante il recupero dei video del canale {channel_id}.")
            else:
                logger.exception(f"Errore HTTP durante il recupero dei video del canale {channel_id}: {str(e)}")
            raise

    def search_channels(self, query: str, max_results: int = 5) -> List[Channel]:
        try:
            response = self.youtube.search().list(
                part='snippet', q=query, type='channel', maxResults=max_results
            ).execute()
        except HttpError as e:
            logger.error(f"Errore ricerca canali per '{query}': {str(e)}")
            raise

        return [
            Channel(
                channel_id=item['id']['channelId'],
                name=html.unescape(item['snippet']['title']),
                thumbnail=item['snippet'].get('thumbnails', {}).get('default', {}).get('url', ''),
            )
            for item in response.get('items', [])
        ]
