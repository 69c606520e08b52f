from rest_framework import permissions
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class IsClient(permissions.BasePermission):
    message = 'Only clients can perform this action.'

    def has_permission(self, request, view):
        if not request.user.is_authenticated:
            return False
        return request.user.role == 'client'


class IsFreelancer(permissions.BasePermission):
    message = 'Only freelancers can perform this action.'

    def has_permission(self, request, view):
        if not request.user.is_authenticated:
            return False
        return request.user.role == 'freelancer'


class IsAdmin(permissions.BasePermission):
    message = 'Admin access required.'

    def has_permission(self, request, view):
        if not request.user.is_authenticated:
            return False
        return request.user.is_superuser or request.user.role == 'admin'


class StandardPagination(PageNumberPagination):
    """``?page=&limit=`` pagination wrapped in the success envelope."""
    page_size = 10
    page_size_query_param = 'limit'
    max_page_size = 100

    def get_paginated_response(self, data, key='results'):
        return Response({
            'success': True,
            'data': {
                key: data,
                'pagination': {
                    'page': self.page.number,
                    'limit': self.get_page_size(self.request),
                    'total': self.page.paginator.count,
                    'pages': self.page.paginator.num_pages,
                },
            },
        })


def paginate(view, request, queryset, serializer_class, key='results'):
    paginator = StandardPagination()
    page = paginator.paginate_queryset(queryset, request, view=view)
    serializer = serializer_class(page, many=True)
    return paginator.get_paginated_response(serializer.data, key=key)


def success(data=None, message=None, status=200):
    body = {'success': True}
    if message:
        body['message'] = message
    if data is not None:
        body['data'] = data
    return Response(body, status=status)
