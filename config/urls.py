from django.urls import include, path

urlpatterns = [
    path("rs/", include("ranking.urls")),
]
