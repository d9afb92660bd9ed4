"""
API - HTTP 엔드포인트

각 라우터는 request.app.state.container에서 공유 인스턴스를 가져옵니다.
"""
