"""
Authentication views.

Login issues a simple-jwt token pair whose access token carries the
user's ``role`` claim; refresh trades a refresh token for a new access
token and logout blacklists refresh tokens.  These live apart from
``dialysis.authentication`` so DRF can import the authentication class
without importing views.
"""
from __future__ import annotations

from django.contrib.auth import authenticate
from django.conf import settings
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken

from dialysis.authentication import issue_tokens
from dialysis.exceptions import ValidationError
from dialysis.serializers.auth import LoginSerializer, LogoutSerializer
from dialysis.services.audit import log_action


@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    """Username/password login for clinic staff."""
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    username = s.validated_data['username']
    password = s.validated_data['password']
    ip = request.META.get('REMOTE_ADDR')

    user = authenticate(request, username=username, password=password)
    if not user:
        log_action(user=None, action='login', object_type='user', object_id=None,
                   detail={'result': 'fail', 'username': username, 'ip': ip})
        return Response({'ok': False, 'error': {'code': 'invalid_credentials',
                                                'message': 'Invalid username or password'}}, status=401)

    log_action(user=user, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok', 'ip': ip})
    refresh = issue_tokens(user)
    lifetime = settings.SIMPLE_JWT.get('ACCESS_TOKEN_LIFETIME')
    payload: dict[str, object] = {
        'ok': True,
        'token': str(refresh.access_token),
        'refreshToken': str(refresh),
        'expiresIn': int(lifetime.total_seconds()) if lifetime else None,
        'user': {
            'id': user.id,
            'username': user.username,
            'name': user.get_full_name() or user.username,
            'role': user.role,
        },
    }
    return Response(payload, status=200)


@api_view(['POST'])
@permission_classes([AllowAny])
def jwt_refresh_view(request):
    """Return a new access token from a refresh token."""
    refresh = request.data.get('refresh') or request.data.get('refreshToken')
    serializer = TokenRefreshSerializer(data={'refresh': refresh})
    try:
        serializer.is_valid(raise_exception=True)
    except TokenError as e:
        return Response({'ok': False, 'error': {'code': 'token_not_valid', 'message': str(e)}}, status=401)
    out = {'ok': True, 'token': serializer.validated_data['access']}
    if 'refresh' in serializer.validated_data:
        out['refreshToken'] = serializer.validated_data['refresh']
    return Response(out)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def jwt_logout_view(request):
    """Blacklist the given refresh token, or every outstanding token of the caller."""
    s = LogoutSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    refresh = s.validated_data.get('refresh')
    count = 0
    if refresh:
        try:
            RefreshToken(refresh).blacklist()
        except TokenError as e:
            raise ValidationError(f'Invalid refresh token: {e}')
        count = 1
    else:
        for token in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            count += int(created)
    log_action(user=request.user, action='logout', object_type='user', object_id=request.user.id,
               detail={'blacklisted': count})
    return Response({'ok': True, 'blacklisted': count})
