"""A REST mapper that caches discovery information for controllers."""