from django.urls import path
from .views import category_type_list, category_item_list_create, category_item_detail

urlpatterns = [
    path('categories/types/', category_type_list, name='category-type-list'),
    path('categories/types/<str:type_key>/items/', category_item_list_create, name='category-item-list-create'),
    path('categories/items/<int:pk>/', category_item_detail, name='category-item-detail'),
]
