# app/schemas/site.py - настройки сайта, уведомления, лента и чат
from pydantic import BaseModel, Field
from app.schemas.car import CamelModel
from datetime import datetime
from typing import List, Literal, Optional


class SocialLinks(CamelModel):
    telegram: str = "https://t.me/VoeAVTO"
    whatsapp: str = "https://wa.me/79991234567"
    vk: str = "https://vk.com/voeavto"


class CompanyInfo(CamelModel):
    name: str = 'ООО "АвтоДил"'
    address: str = "г. Москва, ул. Автомобильная, д. 1"
    email: str = "info@autodeal.ru"


class SiteSettings(CamelModel):
    site_name: str = "AutoDeal"
    phone_number: str = "+7 (999) 123-45-67"
    social: SocialLinks = Field(default_factory=SocialLinks)
    company: CompanyInfo = Field(default_factory=CompanyInfo)


class Notification(BaseModel):
    title: str
    description: str = ""
    variant: Literal["default", "destructive"] = "default"
    created_at: datetime = Field(default_factory=datetime.now)


class TelegramPost(CamelModel):
    id: int
    date: int
    text: str = ""
    photo_url: Optional[str] = None


class TelegramFeedPage(CamelModel):
    posts: List[TelegramPost] = Field(default_factory=list)
    total: int = 0
    has_more: bool = False


class ChatMessage(CamelModel):
    id: str
    user_id: str
    admin_id: Optional[str] = None
    content: str
    is_admin: bool = False
    is_read: bool = False
    created_at: datetime


class ChatMessageCreate(CamelModel):
    user_id: str
    content: str = Field(min_length=1)


class AskRequest(BaseModel):
    question: Optional[str] = None


class AskResponse(BaseModel):
    answer: str
    question: str


class LoginRequest(BaseModel):
    password: str


class ExternalCatalogRequest(BaseModel):
    url: str
