DEFAULT_PAGE_SIZE = 1000
# server page time limit, also used as the client receive timeout
DEFAULT_PAGE_TIMEOUT = 30 * 60
DEFAULT_CONNECT_TIMEOUT = 10
DEFAULT_MAX_DEPTH = 64

IDENTIFIER_ATTRIBUTE = "distinguishedName"
MEMBERSHIP_ATTRIBUTE = "memberOf"
MANAGER_ATTRIBUTE = "manager"

USER = "user"
GROUP = "group"

USER_FILTER = "(&(objectCategory=Person)(objectClass=user)(manager={manager}))"
GROUP_FILTER = "(&(objectCategory=group))"
USER_BY_DN_FILTER = "(&(objectCategory=user)(distinguishedName={dn}))"
USER_BY_ALIAS_FILTER = "(&(objectCategory=user)(samaccountname={alias}))"
DOMAIN_CROSSREF_FILTER = "(&(objectClass=crossRef)(systemFlags:1.2.840.113556.1.4.803:=2))"
NETBIOS_CROSSREF_FILTER = "(&(objectClass=crossRef)(nETBIOSName={netbios}))"
GLOBAL_CATALOG_FILTER = "(&(objectCategory=nTDSDSA)(options:1.2.840.113556.1.4.803:=1))"

USER_PROPERTIES = (
    "name",
    "company",
    "samaccountname",
    "mobile",
    "extensionattribute4", # employee id
    "department",
    "logoncount",
    "title",
    "mailnickname",
    "memberOf",
    "distinguishedName",
    "physicaldeliveryofficename",
    "legacyexchangedn",
    "countrycode",
    "lastlogon",
    "extensionattribute5", # cost center
    "manager",
    "employeetype",
    "primarygroupid",
    "givenname",
    "sn",
)

GROUP_PROPERTIES = (
    "grouptype",
    "whencreated",
    "msexchhidefromaddresslists",
    "iscriticalsystemobject",
    "name",
    "description",
    "instancetype",
    "distinguishedName",
    "objectclass",
    "memberOf",
    "mailnickname",
    "samaccounttype",
    "samaccountname",
    "systemflags",
)

# entity kind -> (projection, relationship attribute)
PROJECTIONS = {
    USER: (USER_PROPERTIES, MEMBERSHIP_ATTRIBUTE),
    GROUP: (GROUP_PROPERTIES, MEMBERSHIP_ATTRIBUTE),
}

# msDS-Behavior-Version of a domain naming context
DOMAIN_FUNCTIONAL_LEVELS = {
    0: "Windows2000NativeDomain",
    1: "Windows2003InterimDomain",
    2: "Windows2003Domain",
    3: "Windows2008Domain",
    4: "Windows2008R2Domain",
    5: "Windows2012Domain",
    6: "Windows2012R2Domain",
    7: "Windows2016Domain",
    10: "Windows2025Domain",
}
MIXED_DOMAIN_MODE = "Windows2000MixedDomain"
UNKNOWN_DOMAIN_MODE = "Unknown"

# https://ldapwiki.com/wiki/Common%20Active%20Directory%20Bind%20Errors
LDAP_ERROR_STATUS = {
    "525": "LDAP_NO_SUCH_OBJECT",
    "52e": "ERROR_LOGON_FAILURE",
    "52f": "ERROR_ACCOUNT_RESTRICTION",
    "530": "ERROR_INVALID_LOGON_HOURS",
    "531": "ERROR_INVALID_WORKSTATION",
    "532": "ERROR_PASSWORD_EXPIRED",
    "533": "ERROR_ACCOUNT_DISABLED",
    "568": "ERROR_TOO_MANY_CONTEXT_IDS",
    "701": "ERROR_ACCOUNT_EXPIRED",
    "773": "ERROR_PASSWORD_MUST_CHANGE",
    "775": "ERROR_ACCOUNT_LOCKED_OUT",
}

PAGED_RESULTS_OID = "1.2.840.113556.1.4.319"

OUTPUT_FORMATS = ["table", "json"]
