import pytest

from users.factories import DEFAULT_TEST_USER_PASSWORD, UserFactory
from users.models import User


@pytest.mark.django_db
def test_create_user():
    user = User.objects.create_user(email="test@example.com", password="testpassword123")
    assert user.email == "test@example.com"
    assert user.check_password("testpassword123")
    assert not user.is_superuser
    assert not user.is_staff
    assert user.is_active


@pytest.mark.django_db
def test_create_user_requires_email():
    with pytest.raises(ValueError, match="email"):
        User.objects.create_user(email="", password="testpassword123")


@pytest.mark.django_db
def test_create_superuser():
    admin_user = User.objects.create_superuser(
        email="admin@example.com", password="adminpassword123"
    )
    assert admin_user.is_superuser
    assert admin_user.is_staff


@pytest.mark.django_db
def test_email_normalization():
    user = User.objects.create_user(email="Test@EXAMPLE.com", password="testpassword123")
    # only the domain part is lowercased
    assert user.email == "Test@example.com"


@pytest.mark.django_db
def test_user_factory_reuses_existing_email():
    first = UserFactory().create_user(email="same@example.com", first_name="Ada")
    second = UserFactory().create_user(email="same@example.com")

    assert first.pk == second.pk
    assert first.get_full_name() == "Ada"
    assert first.check_password(DEFAULT_TEST_USER_PASSWORD)
