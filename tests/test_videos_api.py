from unittest.mock import patch, MagicMock

from veille.api.models.video import Video, VIDEO_STATUSES, EDITABLE_VIDEO_STATUSES

CHANNEL_ID = 'UCJSuTw2VDoX0CWejniSo5TA'


def test_list_videos_newest_first_with_channel_and_transcript(logged_in_client, seed):
    # 1. ARRANGE
    seed.channel(CHANNEL_ID, name='Canale Test')
    seed.video('vid00000001', published_at='2024-01-01T10:00:00+00:00')
    seed.video('vid00000002', published_at='2024-02-01T10:00:00+00:00')
    seed.transcript('vid00000001')

    # 2. ACT
    response = logged_in_client.get('/api/videos')

    # 3. ASSERT
    assert response.status_code == 200
    videos = response.get_json()
    assert [v['id'] for v in videos] == ['vid00000002', 'vid00000001']
    assert videos[0]['channel_name'] == 'Canale Test'
    assert videos[0]['has_transcript'] is False
    assert videos[1]['has_transcript'] is True


def test_list_videos_filters_and_limit(logged_in_client, seed):
    seed.channel(CHANNEL_ID)
    seed.channel('UCaltro000000000000000000', name='Altro')
    seed.video('vid00000001', status='read')
    seed.video('vid00000002', published_at='2024-03-01T10:00:00+00:00')
    seed.video('vid00000003', channel_id='UCaltro000000000000000000')

    by_status = logged_in_client.get('/api/videos?status=read').get_json()
    assert [v['id'] for v in by_status] == ['vid00000001']

    by_channel = logged_in_client.get('/api/videos?channelId=UCaltro000000000000000000').get_json()
    assert [v['id'] for v in by_channel] == ['vid00000003']

    limited = logged_in_client.get('/api/videos?limit=1').get_json()
    assert [v['id'] for v in limited] == ['vid00000002']

    # limit non valido: si usa il default
    assert len(logged_in_client.get('/api/videos?limit=abc').get_json()) == 3


def test_get_single_video(logged_in_client, seed):
    seed.channel(CHANNEL_ID)
    seed.video('vid00000001', title='Titolo')

    response = logged_in_client.get('/api/videos/vid00000001')
    assert response.status_code == 200
    assert response.get_json()['title'] == 'Titolo'

    assert logged_in_client.get('/api/videos/sconosciuto').status_code == 404


def test_update_video_status(logged_in_client, seed):
    seed.channel(CHANNEL_ID)
    seed.video('vid00000001')

    response = logged_in_client.patch('/api/videos', json={'id': 'vid00000001', 'status': 'read'})

    assert response.status_code == 200
    assert seed.fetchone("SELECT status FROM videos WHERE id = 'vid00000001'")['status'] == 'read'


def test_update_video_status_rejects_invalid(logged_in_client, seed):
    seed.channel(CHANNEL_ID)
    seed.video('vid00000001')

    assert logged_in_client.patch('/api/videos', json={'id': 'vid00000001', 'status': 'unavailable'}).status_code == 400
    assert logged_in_client.patch('/api/videos', json={'id': 'vid00000001'}).status_code == 400
    assert seed.fetchone("SELECT status FROM videos WHERE id = 'vid00000001'")['status'] == 'new'


def test_unavailable_status_is_stored_but_never_set_by_hand(logged_in_client, seed):
    # 1. ARRANGE: lo schema accetta 'unavailable', nessun endpoint lo imposta
    seed.channel(CHANNEL_ID)
    seed.video('vid00000001', status='unavailable')
    seed.video('vid00000002')

    # 2. ACT
    listed = logged_in_client.get('/api/videos?status=unavailable').get_json()
    response = logged_in_client.patch('/api/videos', json={'id': 'vid00000002', 'status': 'unavailable'})

    # 3. ASSERT
    assert 'unavailable' in VIDEO_STATUSES
    assert 'unavailable' not in EDITABLE_VIDEO_STATUSES
    assert [v['id'] for v in listed] == ['vid00000001']
    assert response.status_code == 400
    assert seed.fetchone("SELECT status FROM videos WHERE id = 'vid00000002'")['status'] == 'new'


def test_fetch_without_channels_returns_400(logged_in_client):
    response = logged_in_client.post('/api/videos/fetch', json={})
    assert response.status_code == 400
    assert response.get_json()['message'] == 'No channels to fetch from'


def test_fetch_inserts_only_new_videos(logged_in_client, seed):
    # 1. ARRANGE: un video già presente, uno nuovo
    seed.channel(CHANNEL_ID)
    seed.video('vid00000001', status='read')
    fetched = [
        Video(video_id='vid00000001', channel_id=CHANNEL_ID, title='Vecchio'),
        Video(video_id='vid00000002', channel_id=CHANNEL_ID, title='Nuovo', published_at='2024-05-01T00:00:00Z', duration=120),
    ]

    # 2. ACT
    with patch('veille.core.video_fetcher.YouTubeClient') as MockYouTubeClient:
        MockYouTubeClient.return_value.get_channel_videos.return_value = fetched
        response = logged_in_client.post('/api/videos/fetch', json={'channelId': CHANNEL_ID})

    # 3. ASSERT
    assert response.status_code == 200
    assert response.get_json() == {'success': True, 'new_videos': 1}
    MockYouTubeClient.return_value.get_channel_videos.assert_called_once_with(CHANNEL_ID, 10)
    new_row = seed.fetchone("SELECT * FROM videos WHERE id = 'vid00000002'")
    assert new_row['status'] == 'new'
    assert new_row['duration'] == 120
    # Lo stato del video esistente non viene toccato
    assert seed.fetchone("SELECT status FROM videos WHERE id = 'vid00000001'")['status'] == 'read'


def test_fetch_collects_per_channel_errors(logged_in_client, seed):
    seed.channel(CHANNEL_ID, name='Buono')
    seed.channel('UCrotto000000000000000000', name='Rotto')

    def _videos(channel_id, max_results):
        if channel_id == 'UCrotto000000000000000000':
            raise RuntimeError("quota")
        return [Video(video_id='vid00000009', channel_id=channel_id, title='Ok')]

    with patch('veille.core.video_fetcher.YouTubeClient') as MockYouTubeClient:
        MockYouTubeClient.return_value.get_channel_videos.side_effect = _videos
        response = logged_in_client.post('/api/videos/fetch', json={})

    data = response.get_json()
    assert response.status_code == 200
    assert data['new_videos'] == 1
    assert data['errors'] == ['Rotto: quota']
