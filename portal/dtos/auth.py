from dataclasses import dataclass


@dataclass(frozen=True)
class RegisterData:
    name: str
    email: str
    language: str
    password: str
