"""
SSO user microservice.

Registration, CRUD on user records, credential validation and signed access
token issuance, registered with a Eureka discovery server.
"""
__version__ = "0.1.0"
