from restauth.app import main

main()
